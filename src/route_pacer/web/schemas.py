"""Pydantic request/response schemas for the Web API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    version: str


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------


class PointIn(BaseModel):
    lat: float
    lon: float


class SampleIn(BaseModel):
    lat: float
    lon: float
    elevation_m: float
    ratio: float | None = None


class RouteRequest(BaseModel):
    points: list[PointIn]
    distances_m: list[float] | None = None
    samples: list[SampleIn] = Field(default_factory=list)


class RouteResponse(BaseModel):
    total_distance_m: float
    elevation_gain_m: float
    elevation_loss_m: float
    min_elevation_m: float | None
    max_elevation_m: float | None
    point_count: int
    sample_count: int


# ---------------------------------------------------------------------------
# Segments / projection
# ---------------------------------------------------------------------------


class SegmentOut(BaseModel):
    index: int
    start_ratio: float
    end_ratio: float
    speed_kmh: float
    distance_km: float
    color: str


class SegmentsResponse(BaseModel):
    segments: list[SegmentOut]
    total_duration_s: float


class BoundaryRequest(BaseModel):
    ratio: float
    side: str = "start"


class SpeedRequest(BaseModel):
    speed_kmh: float


class SegmentPlanOut(BaseModel):
    index: int
    color: str
    start_km: float
    end_km: float
    distance_km: float
    speed_kmh: float
    duration_s: float
    elevation_gain_m: float
    elevation_loss_m: float


class PlanResponse(BaseModel):
    segments: list[SegmentPlanOut]
    total_duration_s: float


class ProjectionResponse(BaseModel):
    ratio: float
    elapsed_s: float
    ett_s: float
    eta: datetime


# ---------------------------------------------------------------------------
# Ride
# ---------------------------------------------------------------------------


class ObservationIn(BaseModel):
    lat: float
    lon: float
    speed_kmh: float
    timestamp: float
    distance_m: float | None = None


class RideResponse(BaseModel):
    state: str
    moving_time_ms: int
    total_time_ms: int
    current_speed_kmh: float
    average_speed_kmh: float
    distance_m: float
    ratio: float | None
    remaining_km: float | None
    ett_s: float | None
    eta: datetime | None


# ---------------------------------------------------------------------------
# Profile views
# ---------------------------------------------------------------------------


class PanRequest(BaseModel):
    delta: float


class HoverRequest(BaseModel):
    pixel_x: float
    canvas_width: float


class HoverResponse(BaseModel):
    ratio: float
    sample_index: int | None
    lat: float
    lon: float
    kind: str


class ProfileResponse(BaseModel):
    view: str
    visible_start: int
    visible_end: int
    hover_index: int | None
    live_index: int | None
    zoom_factor: float
    pan_offset: float
