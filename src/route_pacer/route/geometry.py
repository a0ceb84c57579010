"""GeometryIndex: converts between route ratios, distances and coordinates.

A *ratio* is a position along the route expressed as a fraction of the total
distance (0.0 = start, 1.0 = finish).  All lookups over the cumulative
distance table use binary search.
"""

from __future__ import annotations

import bisect
import math

from route_pacer.errors import EmptyRoute
from route_pacer.route.models import ElevationSample, GeoPoint, RoutePolyline, RouteSummary

EARTH_RADIUS_M = 6_371_000


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in metres."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.asin(math.sqrt(min(1.0, a)))


def _clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


class GeometryIndex:
    """Position lookups over a route polyline and its elevation samples.

    Args:
        polyline: Route points with cumulative distances.
        samples: Optional elevation samples aligned to the polyline.  Samples
            without a ``ratio`` are projected onto the nearest polyline vertex.
        max_samples: Upper bound on the number of elevation samples.

    Raises:
        EmptyRoute: If the polyline has fewer than two points, a non-finite
            coordinate or distance, or its distance table is the wrong length
            or decreases.
        ValueError: If more than *max_samples* elevation samples are given.
    """

    def __init__(
        self,
        polyline: RoutePolyline,
        samples: list[ElevationSample] | None = None,
        max_samples: int = 500,
    ) -> None:
        points = polyline.points
        dists = polyline.distances_m
        if len(points) < 2:
            raise EmptyRoute(f"A route needs at least 2 points, got {len(points)}")
        if len(dists) != len(points):
            raise EmptyRoute(
                f"Distance table has {len(dists)} entries for {len(points)} points"
            )
        if not all(math.isfinite(d) for d in dists):
            raise EmptyRoute("Cumulative distances must be finite numbers")
        if not all(math.isfinite(p.lat) and math.isfinite(p.lon) for p in points):
            raise EmptyRoute("Route coordinates must be finite numbers")
        if any(b < a for a, b in zip(dists, dists[1:])):
            raise EmptyRoute("Cumulative distances must be non-decreasing")

        samples = list(samples or [])
        if len(samples) > max_samples:
            raise ValueError(f"At most {max_samples} elevation samples allowed, got {len(samples)}")

        self._points = list(points)
        self._dists = [float(d) - float(dists[0]) for d in dists]
        self._total = self._dists[-1]
        self._samples = samples
        self._sample_ratios = self._project_samples(samples)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def points(self) -> list[GeoPoint]:
        return list(self._points)

    @property
    def total_distance_m(self) -> float:
        return self._total

    @property
    def total_distance_km(self) -> float:
        return self._total / 1000.0

    @property
    def samples(self) -> list[ElevationSample]:
        return list(self._samples)

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    @property
    def sample_ratios(self) -> list[float]:
        return list(self._sample_ratios)

    # ------------------------------------------------------------------
    # Ratio / distance / point conversions
    # ------------------------------------------------------------------

    def ratio_at_distance(self, distance_m: float) -> float:
        """Return the ratio for *distance_m* metres from the start (clamped)."""
        if self._total <= 0:
            return 0.0
        return _clamp01(distance_m / self._total)

    def distance_at_ratio(self, ratio: float) -> float:
        """Return the distance in metres from the start at *ratio* (clamped)."""
        return _clamp01(ratio) * self._total

    def point_at_ratio(self, ratio: float) -> GeoPoint:
        """Interpolate the coordinate at *ratio*.

        The position is located by distance, so unevenly spaced vertices are
        handled correctly: the result lies between the two bracketing
        vertices at the residual-distance fraction of that polyline piece.
        """
        d = self.distance_at_ratio(ratio)
        dists = self._dists
        if d <= dists[0]:
            return self._points[0]
        if d >= dists[-1]:
            return self._points[-1]
        idx = bisect.bisect_right(dists, d)
        p0, p1 = self._points[idx - 1], self._points[idx]
        span = dists[idx] - dists[idx - 1]
        if span < 1e-12:
            return p0
        t = (d - dists[idx - 1]) / span
        return GeoPoint(lat=p0.lat + t * (p1.lat - p0.lat), lon=p0.lon + t * (p1.lon - p0.lon))

    def nearest_index(self, point: GeoPoint) -> int:
        """Return the index of the polyline vertex closest to *point*."""
        best_i = 0
        best_d = math.inf
        for i, p in enumerate(self._points):
            d = haversine_m(point.lat, point.lon, p.lat, p.lon)
            if d < best_d:
                best_i, best_d = i, d
        return best_i

    def nearest_ratio(self, point: GeoPoint) -> float:
        """Project *point* onto the route (nearest vertex) and return its ratio."""
        return self.ratio_at_distance(self._dists[self.nearest_index(point)])

    # ------------------------------------------------------------------
    # Elevation samples
    # ------------------------------------------------------------------

    def sample_index_at_ratio(self, ratio: float) -> int | None:
        """Return the index of the elevation sample closest to *ratio*, or None without samples."""
        ratios = self._sample_ratios
        if not ratios:
            return None
        r = _clamp01(ratio)
        idx = bisect.bisect_left(ratios, r)
        if idx == 0:
            return 0
        if idx >= len(ratios):
            return len(ratios) - 1
        return idx if ratios[idx] - r < r - ratios[idx - 1] else idx - 1

    def elevation_at_ratio(self, ratio: float) -> float | None:
        """Linearly interpolate the elevation at *ratio*, or None without samples."""
        ratios = self._sample_ratios
        if not ratios:
            return None
        r = _clamp01(ratio)
        if r <= ratios[0]:
            return self._samples[0].elevation_m
        if r >= ratios[-1]:
            return self._samples[-1].elevation_m
        idx = bisect.bisect_right(ratios, r)
        e0 = self._samples[idx - 1].elevation_m
        e1 = self._samples[idx].elevation_m
        span = ratios[idx] - ratios[idx - 1]
        if span < 1e-12:
            return e0
        return e0 + (r - ratios[idx - 1]) / span * (e1 - e0)

    def elevation_change(self, start_ratio: float, end_ratio: float) -> tuple[float, float]:
        """Return ``(gain_m, loss_m)`` along the profile between two ratios."""
        if not self._sample_ratios:
            return 0.0, 0.0
        lo, hi = sorted((_clamp01(start_ratio), _clamp01(end_ratio)))
        profile = [self.elevation_at_ratio(lo)]
        profile += [
            s.elevation_m
            for s, r in zip(self._samples, self._sample_ratios)
            if lo < r < hi
        ]
        profile.append(self.elevation_at_ratio(hi))
        gain = loss = 0.0
        for a, b in zip(profile, profile[1:]):
            if b > a:
                gain += b - a
            else:
                loss += a - b
        return gain, loss

    def summary(self) -> RouteSummary:
        """Return distance and elevation figures for the whole route."""
        gain, loss = self.elevation_change(0.0, 1.0)
        elevations = [s.elevation_m for s in self._samples]
        return RouteSummary(
            total_distance_m=self._total,
            elevation_gain_m=gain,
            elevation_loss_m=loss,
            min_elevation_m=min(elevations) if elevations else None,
            max_elevation_m=max(elevations) if elevations else None,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _project_samples(self, samples: list[ElevationSample]) -> list[float]:
        """Ratio of every sample, forced non-decreasing and pinned to the endpoints."""
        ratios: list[float] = []
        for s in samples:
            r = s.ratio if s.ratio is not None else self.nearest_ratio(GeoPoint(s.lat, s.lon))
            r = _clamp01(r)
            if ratios and r < ratios[-1]:
                r = ratios[-1]
            ratios.append(r)
        if ratios:
            ratios[0] = 0.0
            ratios[-1] = 1.0 if len(ratios) > 1 else 0.0
        return ratios
