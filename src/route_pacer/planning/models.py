"""Planning data models."""

from __future__ import annotations

from dataclasses import dataclass

from route_pacer.config import DEFAULT_PALETTE


@dataclass
class Segment:
    """A contiguous sub-range of the route ridden at one target speed.

    Layout (all values are ratios of the total route distance):

    ::

        0.0 ──[seg 0]── b1 ──[seg 1]── b2 ── … ──[seg n-1]── 1.0

    Neighbouring segments share their edge, so there are no gaps or overlaps.
    """

    index: int
    """Position in the segment list (0-based, contiguous)."""

    start_ratio: float
    end_ratio: float

    speed_kmh: float
    """Target speed in km/h."""

    @property
    def span(self) -> float:
        return self.end_ratio - self.start_ratio


@dataclass
class SegmentPlan:
    """Per-segment breakdown of the projected ride."""

    index: int
    color: str
    start_km: float
    end_km: float
    distance_km: float
    speed_kmh: float
    duration_s: float
    elevation_gain_m: float
    elevation_loss_m: float


def color_for(index: int, palette: tuple[str, ...] = DEFAULT_PALETTE) -> str:
    """Return the display colour of segment *index*.

    Colours are derived from the index alone, so renumbering after a removal
    may recolour later segments.
    """
    return palette[index % len(palette)]
