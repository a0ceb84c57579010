"""PlannerService: one in-memory planning and ride session for the Web API."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from route_pacer.config import Settings
from route_pacer.events import EventBus, RouteChanged
from route_pacer.planning.projection import ProjectionEngine
from route_pacer.planning.segments import SegmentModel
from route_pacer.profile.view_state import ProfileViewState
from route_pacer.ride.clock import RideClock
from route_pacer.ride.models import PositionObservation
from route_pacer.ride.tracker import LiveTracker, TrackerStatus
from route_pacer.route.geometry import GeometryIndex
from route_pacer.route.models import ElevationSample, GeoPoint, RoutePolyline, RouteSummary

_logger = logging.getLogger(__name__)

VIEW_NAMES = ("planner", "dashboard")


class NoRouteError(LookupError):
    """Raised when a planning or ride call arrives before any route was set."""


class PlannerService:
    """Owns the planner's segment model, both profile views and the live tracker.

    Parameters
    ----------
    settings:
        Shared tuning constants.
    time_source:
        Wall-clock seconds used when a request carries no timestamp.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        time_source: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or Settings()
        self.bus = EventBus()
        self._time = time_source
        self._geometry: GeometryIndex | None = None
        self._model: SegmentModel | None = None
        self._projection: ProjectionEngine | None = None
        self._views: dict[str, ProfileViewState] = {}
        self._tracker: LiveTracker | None = None

    # ------------------------------------------------------------------
    # Route
    # ------------------------------------------------------------------

    def set_route(
        self,
        points: list[GeoPoint],
        distances_m: list[float] | None = None,
        samples: list[ElevationSample] | None = None,
    ) -> RouteSummary:
        """Accept a new route; segments, views and the ride are reset.

        Raises
        ------
        EmptyRoute
            If the route is degenerate.  The previous route stays in place.
        """
        if distances_m is None:
            polyline = RoutePolyline.from_points(points)
        else:
            polyline = RoutePolyline(points=list(points), distances_m=list(distances_m))
        geometry = GeometryIndex(polyline, samples, max_samples=self.settings.max_elevation_samples)

        self._geometry = geometry
        if self._model is None:
            self._model = SegmentModel(geometry, self.settings, self.bus)
        else:
            self._model.reset(geometry)
        self._projection = ProjectionEngine(self._model)
        self._views = {
            name: ProfileViewState(geometry, name=name, settings=self.settings, bus=self.bus)
            for name in VIEW_NAMES
        }
        self._tracker = LiveTracker(
            self._projection,
            clock=RideClock(self.settings, self.bus, self._time),
            profile=self._views["dashboard"],
            bus=self.bus,
            time_source=self._time,
        )
        self.bus.publish(RouteChanged(
            total_distance_m=geometry.total_distance_m,
            point_count=len(polyline.points),
            sample_count=geometry.sample_count,
        ))
        _logger.info(
            "Route accepted: %.0f m, %d points, %d elevation samples",
            geometry.total_distance_m, len(polyline.points), geometry.sample_count,
        )
        return geometry.summary()

    @property
    def geometry(self) -> GeometryIndex:
        if self._geometry is None:
            raise NoRouteError("No route has been set")
        return self._geometry

    @property
    def model(self) -> SegmentModel:
        if self._model is None or self._geometry is None:
            raise NoRouteError("No route has been set")
        return self._model

    @property
    def projection(self) -> ProjectionEngine:
        if self._projection is None:
            raise NoRouteError("No route has been set")
        return self._projection

    @property
    def tracker(self) -> LiveTracker:
        if self._tracker is None:
            raise NoRouteError("No route has been set")
        return self._tracker

    def view(self, name: str) -> ProfileViewState:
        """Return the profile view *name* (``planner`` or ``dashboard``).

        Raises
        ------
        KeyError
            If *name* is not a known view.
        """
        if name not in VIEW_NAMES:
            raise KeyError(f"Unknown profile view {name!r}")
        if not self._views:
            raise NoRouteError("No route has been set")
        return self._views[name]

    # ------------------------------------------------------------------
    # Ride
    # ------------------------------------------------------------------

    def ride_control(self, action: str, now: float | None = None) -> bool:
        """Apply ``start``/``pause``/``resume``/``stop``; False if the state forbids it."""
        if action not in ("start", "pause", "resume", "stop"):
            raise ValueError(f"Unknown ride action {action!r}")
        return getattr(self.tracker, action)(now)

    def observe(self, obs: PositionObservation) -> float:
        return self.tracker.handle_observation(obs)

    def tick(self, now: float | None = None) -> None:
        self.tracker.handle_tick(now)

    def ride_status(self, now: float | None = None) -> TrackerStatus:
        return self.tracker.status(now)
