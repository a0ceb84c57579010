"""SegmentModel: ordered speed segments covering a route.

The model keeps three invariants at all times:

* segments cover [0.0, 1.0] contiguously and are numbered 0..n-1;
* no segment is shorter than ``min_segment_gap``;
* there is always at least one segment.

A rejected edit raises before anything changes.  An accepted edit is applied
first and then announced on the event bus; an exception from a subscriber
propagates to the caller, but the edit itself stays applied.
"""

from __future__ import annotations

import bisect
import logging
import math
from dataclasses import replace

from route_pacer.config import Settings
from route_pacer.errors import MinimumGapViolation, SingleSegmentInvariant
from route_pacer.events import EventBus, SegmentsChanged
from route_pacer.planning.models import Segment, color_for
from route_pacer.route.geometry import GeometryIndex

_logger = logging.getLogger(__name__)

# Tolerance for comparing ratios produced by repeated halving.
_EPS = 1e-9

HANDLE_SIDES = ("start", "end")


class SegmentModel:
    """Editable list of route segments and their target speeds.

    Parameters
    ----------
    geometry:
        Geometry of the route being planned; supplies the total distance.
    settings:
        Gap, speed bounds and default speed.  Defaults to :class:`Settings`.
    bus:
        Optional event bus; a :class:`SegmentsChanged` event is published
        after every successful edit.
    """

    def __init__(
        self,
        geometry: GeometryIndex,
        settings: Settings | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._bus = bus
        self._geometry = geometry
        self._revision = 0
        self._segments: list[Segment] = [self._default_segment()]

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def geometry(self) -> GeometryIndex:
        return self._geometry

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def revision(self) -> int:
        """Counter bumped by every successful edit; used to detect stale projections."""
        return self._revision

    @property
    def segments(self) -> list[Segment]:
        """Return copies of the current segments, ordered by index."""
        return [replace(s) for s in self._segments]

    def __len__(self) -> int:
        return len(self._segments)

    def boundaries(self) -> list[float]:
        """Return the n+1 edge ratios, from 0.0 to 1.0."""
        return [s.start_ratio for s in self._segments] + [self._segments[-1].end_ratio]

    def segment_distance_km(self, index: int) -> float:
        seg = self._get(index)
        return seg.span * self._geometry.total_distance_km

    def segment_at_ratio(self, ratio: float) -> Segment:
        """Return the segment whose [start, end) range contains *ratio*.

        The last segment also owns ``ratio == 1.0``.  Out-of-range ratios are
        clamped onto the route.
        """
        r = min(1.0, max(0.0, ratio))
        starts = [s.start_ratio for s in self._segments]
        idx = bisect.bisect_right(starts, r) - 1
        idx = min(len(self._segments) - 1, max(0, idx))
        return replace(self._segments[idx])

    def color(self, index: int) -> str:
        self._get(index)
        return color_for(index, self._settings.palette)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def add_segment(self) -> Segment:
        """Split the last segment into two equal halves.

        The new segment is appended and inherits its predecessor's speed.

        Raises
        ------
        MinimumGapViolation
            If either half would be shorter than the minimum gap.
        """
        last = self._segments[-1]
        if last.span / 2 < self._settings.min_segment_gap - _EPS:
            raise MinimumGapViolation(
                f"Segment {last.index} spans {last.span:.4f}; "
                f"cannot split below the minimum gap {self._settings.min_segment_gap}"
            )
        mid = (last.start_ratio + last.end_ratio) / 2
        new = Segment(
            index=last.index + 1,
            start_ratio=mid,
            end_ratio=last.end_ratio,
            speed_kmh=last.speed_kmh,
        )
        last.end_ratio = mid
        self._segments.append(new)
        self._changed("add")
        return replace(new)

    def remove_segment(self, index: int) -> None:
        """Remove segment *index*, merging its range into a neighbour.

        The following segment absorbs the range when there is one; otherwise
        the preceding segment does.  Remaining segments are renumbered.

        Raises
        ------
        SingleSegmentInvariant
            If only one segment remains.
        IndexError
            If *index* does not exist.
        """
        if len(self._segments) == 1:
            raise SingleSegmentInvariant("A route always keeps at least one segment")
        removed = self._get(index)
        if index < len(self._segments) - 1:
            self._segments[index + 1].start_ratio = removed.start_ratio
        else:
            self._segments[index - 1].end_ratio = removed.end_ratio
        del self._segments[index]
        for i, seg in enumerate(self._segments):
            seg.index = i
        self._changed("remove")

    def update_boundary(self, index: int, new_ratio: float, side: str = "start") -> float:
        """Move one edge of segment *index* and return the ratio actually applied.

        *side* says which handle was dragged: ``"start"`` moves the edge shared
        with the previous segment, ``"end"`` the edge shared with the next one.
        Either way the shared edge is written on both neighbours at once.  The
        ratio is clamped so both neighbours keep at least the minimum gap.

        Raises
        ------
        ValueError
            If *side* is unknown, *new_ratio* is not finite, or the handle is
            a fixed route endpoint.
        IndexError
            If *index* does not exist.
        """
        if side not in HANDLE_SIDES:
            raise ValueError(f"side must be one of {HANDLE_SIDES}, got {side!r}")
        if not math.isfinite(new_ratio):
            raise ValueError(f"Boundary ratio must be finite, got {new_ratio!r}")
        self._get(index)
        boundary = index if side == "start" else index + 1
        if boundary <= 0 or boundary >= len(self._segments):
            raise ValueError("The route start and finish cannot be moved")

        before = self._segments[boundary - 1]
        after = self._segments[boundary]
        gap = self._settings.min_segment_gap
        lower = before.start_ratio + gap
        upper = after.end_ratio - gap
        clamped = min(upper, max(lower, new_ratio))

        before.end_ratio = clamped
        after.start_ratio = clamped
        self._changed("boundary")
        return clamped

    def set_speed(self, index: int, kmh: float) -> float:
        """Set the target speed of segment *index*, clamped to the allowed range."""
        if not math.isfinite(kmh):
            raise ValueError(f"Speed must be finite, got {kmh!r}")
        seg = self._get(index)
        seg.speed_kmh = min(self._settings.max_speed_kmh, max(self._settings.min_speed_kmh, kmh))
        self._changed("speed")
        return seg.speed_kmh

    def reset(self, geometry: GeometryIndex | None = None) -> None:
        """Return to a single default segment, optionally for a new route."""
        if geometry is not None:
            self._geometry = geometry
        self._segments = [self._default_segment()]
        self._changed("reset")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _default_segment(self) -> Segment:
        return Segment(index=0, start_ratio=0.0, end_ratio=1.0, speed_kmh=self._settings.default_speed_kmh)

    def _get(self, index: int) -> Segment:
        if not 0 <= index < len(self._segments):
            raise IndexError(f"No segment {index}; model has {len(self._segments)}")
        return self._segments[index]

    def _changed(self, reason: str) -> None:
        self._revision += 1
        _logger.debug("Segments changed (%s), revision %d", reason, self._revision)
        if self._bus is not None:
            self._bus.publish(
                SegmentsChanged(revision=self._revision, reason=reason, segment_count=len(self._segments))
            )
