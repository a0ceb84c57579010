"""FastAPI Web application exposing the planner and live ride session."""

from __future__ import annotations

from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException

from route_pacer import __version__
from route_pacer.config import Settings
from route_pacer.errors import EmptyRoute, InvalidTransition, SegmentEditRejected
from route_pacer.ride.models import PositionObservation
from route_pacer.route.models import ElevationSample, GeoPoint
from route_pacer.web.schemas import (
    BoundaryRequest,
    HealthResponse,
    HoverRequest,
    HoverResponse,
    ObservationIn,
    PanRequest,
    PlanResponse,
    ProfileResponse,
    ProjectionResponse,
    RideResponse,
    RouteRequest,
    RouteResponse,
    SegmentOut,
    SegmentPlanOut,
    SegmentsResponse,
    SpeedRequest,
)
from route_pacer.web.service import NoRouteError, PlannerService

load_dotenv()  # loads .env from project root; must run before settings are read

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(title="Route Pacer", version=__version__)

_service = PlannerService(Settings.from_env())


def get_service() -> PlannerService:
    return _service


def _no_route(exc: NoRouteError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


def _segments_response(svc: PlannerService) -> SegmentsResponse:
    model = svc.model
    return SegmentsResponse(
        segments=[
            SegmentOut(
                index=s.index,
                start_ratio=s.start_ratio,
                end_ratio=s.end_ratio,
                speed_kmh=s.speed_kmh,
                distance_km=model.segment_distance_km(s.index),
                color=model.color(s.index),
            )
            for s in model.segments
        ],
        total_duration_s=svc.projection.total_duration().total_seconds(),
    )


def _ride_response(svc: PlannerService, now: float | None = None) -> RideResponse:
    status = svc.ride_status(now)
    ride = status.ride
    return RideResponse(
        state=ride.state.value,
        moving_time_ms=ride.moving_time_ms,
        total_time_ms=ride.total_time_ms,
        current_speed_kmh=ride.current_speed_kmh,
        average_speed_kmh=ride.average_speed_kmh,
        distance_m=ride.distance_m,
        ratio=status.ratio,
        remaining_km=status.remaining_km,
        ett_s=None if status.ett is None else status.ett.total_seconds(),
        eta=status.eta,
    )


def _profile_response(svc: PlannerService, view: str) -> ProfileResponse:
    try:
        snap = svc.view(view).snapshot()
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown profile view {view!r}") from exc
    except NoRouteError as exc:
        raise _no_route(exc) from exc
    return ProfileResponse(
        view=snap.view,
        visible_start=snap.visible_start,
        visible_end=snap.visible_end,
        hover_index=snap.hover_index,
        live_index=snap.live_index,
        zoom_factor=snap.zoom_factor,
        pan_offset=snap.pan_offset,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


@app.put("/api/route", response_model=RouteResponse)
def set_route(req: RouteRequest, svc: PlannerService = Depends(get_service)) -> RouteResponse:
    """Accept a new route and reset segments, views and the ride."""
    points = [GeoPoint(lat=p.lat, lon=p.lon) for p in req.points]
    samples = [
        ElevationSample(lat=s.lat, lon=s.lon, elevation_m=s.elevation_m, ratio=s.ratio)
        for s in req.samples
    ]
    try:
        summary = svc.set_route(points, req.distances_m, samples)
    except (EmptyRoute, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return RouteResponse(
        total_distance_m=summary.total_distance_m,
        elevation_gain_m=summary.elevation_gain_m,
        elevation_loss_m=summary.elevation_loss_m,
        min_elevation_m=summary.min_elevation_m,
        max_elevation_m=summary.max_elevation_m,
        point_count=len(points),
        sample_count=len(samples),
    )


@app.get("/api/segments", response_model=SegmentsResponse)
def list_segments(svc: PlannerService = Depends(get_service)) -> SegmentsResponse:
    try:
        return _segments_response(svc)
    except NoRouteError as exc:
        raise _no_route(exc) from exc


@app.post("/api/segments", response_model=SegmentsResponse)
def add_segment(svc: PlannerService = Depends(get_service)) -> SegmentsResponse:
    """Split the last segment in two."""
    try:
        svc.model.add_segment()
        return _segments_response(svc)
    except NoRouteError as exc:
        raise _no_route(exc) from exc
    except SegmentEditRejected as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@app.delete("/api/segments/{index}", response_model=SegmentsResponse)
def remove_segment(index: int, svc: PlannerService = Depends(get_service)) -> SegmentsResponse:
    try:
        svc.model.remove_segment(index)
        return _segments_response(svc)
    except NoRouteError as exc:
        raise _no_route(exc) from exc
    except SegmentEditRejected as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except IndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.put("/api/segments/{index}/boundary", response_model=SegmentsResponse)
def move_boundary(
    index: int, req: BoundaryRequest, svc: PlannerService = Depends(get_service)
) -> SegmentsResponse:
    """Drag the start or end handle of segment *index*; the ratio is clamped."""
    try:
        svc.model.update_boundary(index, req.ratio, req.side)
        return _segments_response(svc)
    except NoRouteError as exc:
        raise _no_route(exc) from exc
    except IndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.put("/api/segments/{index}/speed", response_model=SegmentsResponse)
def set_speed(
    index: int, req: SpeedRequest, svc: PlannerService = Depends(get_service)
) -> SegmentsResponse:
    try:
        svc.model.set_speed(index, req.speed_kmh)
        return _segments_response(svc)
    except NoRouteError as exc:
        raise _no_route(exc) from exc
    except IndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.get("/api/plan", response_model=PlanResponse)
def plan(svc: PlannerService = Depends(get_service)) -> PlanResponse:
    """Per-segment distance, time and climbing."""
    try:
        rows = svc.projection.plan()
        total = svc.projection.total_duration().total_seconds()
    except NoRouteError as exc:
        raise _no_route(exc) from exc
    return PlanResponse(
        segments=[SegmentPlanOut(**vars(r)) for r in rows],
        total_duration_s=total,
    )


@app.get("/api/projection", response_model=ProjectionResponse)
def projection(
    ratio: float = 0.0,
    timestamp: float | None = None,
    svc: PlannerService = Depends(get_service),
) -> ProjectionResponse:
    """Elapsed time to *ratio*, remaining time and arrival estimate from there."""
    try:
        engine = svc.projection
    except NoRouteError as exc:
        raise _no_route(exc) from exc
    now = datetime.now(timezone.utc) if timestamp is None else datetime.fromtimestamp(timestamp, tz=timezone.utc)
    r = min(1.0, max(0.0, ratio))
    return ProjectionResponse(
        ratio=r,
        elapsed_s=engine.cumulative_time_at_ratio(r),
        ett_s=engine.ett_from_ratio(r).total_seconds(),
        eta=engine.eta_from_ratio(r, now),
    )


@app.post("/api/ride/observations", response_model=RideResponse)
def observe(obs: ObservationIn, svc: PlannerService = Depends(get_service)) -> RideResponse:
    """Apply one live position + speed sample."""
    try:
        svc.observe(PositionObservation(
            lat=obs.lat,
            lon=obs.lon,
            speed_kmh=max(0.0, obs.speed_kmh),
            timestamp=obs.timestamp,
            distance_m=obs.distance_m,
        ))
    except NoRouteError as exc:
        raise _no_route(exc) from exc
    return _ride_response(svc, obs.timestamp)


@app.post("/api/ride/tick", response_model=RideResponse)
def tick(timestamp: float | None = None, svc: PlannerService = Depends(get_service)) -> RideResponse:
    try:
        svc.tick(timestamp)
    except NoRouteError as exc:
        raise _no_route(exc) from exc
    return _ride_response(svc, timestamp)


@app.post("/api/ride/{action}", response_model=RideResponse)
def ride_control(
    action: str,
    timestamp: float | None = None,
    svc: PlannerService = Depends(get_service),
) -> RideResponse:
    """``start`` / ``pause`` / ``resume`` / ``stop`` the ride."""
    try:
        applied = svc.ride_control(action, timestamp)
    except NoRouteError as exc:
        raise _no_route(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if not applied:
        state = svc.tracker.clock.state
        raise HTTPException(
            status_code=409,
            detail=str(InvalidTransition(state, action)),
        )
    return _ride_response(svc, timestamp)


@app.get("/api/ride", response_model=RideResponse)
def ride_status(timestamp: float | None = None, svc: PlannerService = Depends(get_service)) -> RideResponse:
    try:
        return _ride_response(svc, timestamp)
    except NoRouteError as exc:
        raise _no_route(exc) from exc


@app.get("/api/profile/{view}", response_model=ProfileResponse)
def profile(view: str, svc: PlannerService = Depends(get_service)) -> ProfileResponse:
    return _profile_response(svc, view)


@app.post("/api/profile/{view}/zoom-in", response_model=ProfileResponse)
def zoom_in(view: str, svc: PlannerService = Depends(get_service)) -> ProfileResponse:
    _profile_response(svc, view)
    svc.view(view).zoom_in()
    return _profile_response(svc, view)


@app.post("/api/profile/{view}/zoom-out", response_model=ProfileResponse)
def zoom_out(view: str, svc: PlannerService = Depends(get_service)) -> ProfileResponse:
    _profile_response(svc, view)
    svc.view(view).zoom_out()
    return _profile_response(svc, view)


@app.post("/api/profile/{view}/reset", response_model=ProfileResponse)
def reset_view(view: str, svc: PlannerService = Depends(get_service)) -> ProfileResponse:
    _profile_response(svc, view)
    svc.view(view).reset()
    return _profile_response(svc, view)


@app.post("/api/profile/{view}/pan", response_model=ProfileResponse)
def pan(view: str, req: PanRequest, svc: PlannerService = Depends(get_service)) -> ProfileResponse:
    _profile_response(svc, view)
    svc.view(view).pan(req.delta)
    return _profile_response(svc, view)


@app.post("/api/profile/{view}/hover", response_model=HoverResponse)
def hover(view: str, req: HoverRequest, svc: PlannerService = Depends(get_service)) -> HoverResponse:
    """Map a pointer position on the profile to a map marker."""
    _profile_response(svc, view)
    try:
        marker = svc.view(view).hover_to_position(req.pixel_x, req.canvas_width)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return HoverResponse(
        ratio=marker.ratio,
        sample_index=marker.sample_index,
        lat=marker.point.lat,
        lon=marker.point.lon,
        kind=marker.kind,
    )
