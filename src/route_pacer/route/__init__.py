"""Route geometry: polyline, elevation samples and ratio lookups."""

from route_pacer.route.geometry import GeometryIndex, haversine_m
from route_pacer.route.models import ElevationSample, GeoPoint, RoutePolyline, RouteSummary

__all__ = [
    "ElevationSample",
    "GeoPoint",
    "GeometryIndex",
    "RoutePolyline",
    "RouteSummary",
    "haversine_m",
]
