"""Ride tracking data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from route_pacer.route.models import GeoPoint


class RideState(str, Enum):
    """Lifecycle of a ride.  IDLE is initial, STOPPED is terminal."""

    IDLE = "idle"
    ACTIVE = "active"
    PAUSED = "paused"
    STOPPED = "stopped"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class PositionObservation:
    """A single live sample from the position feed."""

    lat: float
    lon: float

    speed_kmh: float
    """Measured ground speed in km/h, clamped to >= 0 by the feed parser."""

    timestamp: float
    """Wall-clock seconds (``time.time()``) when the sample was taken."""

    distance_m: float | None = None
    """Distance travelled since the previous sample, if the feed supplies it."""

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lon=self.lon)

    @classmethod
    def from_dict(cls, d: dict) -> PositionObservation:
        """Create an observation from a raw feed dict.

        Accepts ``lat``/``latitude``, ``lon``/``longitude``, ``speed_kmh`` and
        ``timestamp``; ``distance_m`` is optional.

        Raises
        ------
        KeyError, ValueError, TypeError
            If a required field is missing or not numeric.
        """
        lat = d["lat"] if "lat" in d else d["latitude"]
        lon = d["lon"] if "lon" in d else d["longitude"]
        distance = d.get("distance_m")
        return cls(
            lat=float(lat),
            lon=float(lon),
            speed_kmh=max(0.0, float(d["speed_kmh"])),
            timestamp=float(d["timestamp"]),
            distance_m=None if distance is None else max(0.0, float(distance)),
        )


@dataclass(frozen=True)
class RideSnapshot:
    """Read-only view of the ride clock for dashboards."""

    state: RideState
    moving_time_ms: int
    total_time_ms: int
    current_speed_kmh: float
    average_speed_kmh: float
    distance_m: float
