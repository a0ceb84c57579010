"""Segment planning and arrival-time projection."""

from route_pacer.planning.models import Segment, SegmentPlan, color_for
from route_pacer.planning.projection import ProjectionEngine
from route_pacer.planning.segments import SegmentModel

__all__ = [
    "ProjectionEngine",
    "Segment",
    "SegmentModel",
    "SegmentPlan",
    "color_for",
]
