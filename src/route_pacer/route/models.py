"""Route data structures handed over by the routing and elevation collaborators."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GeoPoint:
    """A geographic coordinate in decimal degrees."""

    lat: float
    lon: float


@dataclass(frozen=True)
class ElevationSample:
    """One elevation reading along the route.

    Samples are a down-sampled subset of the polyline (at most a few hundred),
    the first and last matching the route endpoints.
    """

    lat: float
    lon: float

    elevation_m: float
    """Elevation above sea level in metres."""

    ratio: float | None = None
    """Position along the route [0.0, 1.0]; projected onto the polyline when ``None``."""


@dataclass
class RoutePolyline:
    """Ordered route points with a parallel cumulative-distance table.

    ``distances_m[i]`` is the distance from the start to ``points[i]`` in
    metres.  Validation happens in :class:`~route_pacer.route.geometry.GeometryIndex`.
    """

    points: list[GeoPoint]
    distances_m: list[float]

    @classmethod
    def from_points(cls, points: list[GeoPoint]) -> RoutePolyline:
        """Build a polyline whose distance table is measured with the haversine formula."""
        from route_pacer.route.geometry import haversine_m

        distances = [0.0] if points else []
        for prev, cur in zip(points, points[1:]):
            distances.append(distances[-1] + haversine_m(prev.lat, prev.lon, cur.lat, cur.lon))
        return cls(points=list(points), distances_m=distances)

    @property
    def total_distance_m(self) -> float:
        return self.distances_m[-1] if self.distances_m else 0.0


@dataclass
class RouteSummary:
    """Headline figures for an accepted route."""

    total_distance_m: float
    elevation_gain_m: float
    elevation_loss_m: float
    min_elevation_m: float | None
    max_elevation_m: float | None
