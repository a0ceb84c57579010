"""ProjectionEngine: travel time, ETA and ETT from segment speeds.

Time along the route is piecewise linear in the ratio: within a segment it
grows at ``distance / speed``.  The engine keeps a table of cumulative time at
every segment start and rebuilds it whenever the segment model's revision has
moved on since the last build.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from route_pacer.planning.models import SegmentPlan
from route_pacer.planning.segments import SegmentModel

_logger = logging.getLogger(__name__)


class ProjectionEngine:
    """Project arrival times for a :class:`SegmentModel`.

    Args:
        model: Segment model to project.  Edits made to it are picked up on
            the next read.
    """

    def __init__(self, model: SegmentModel) -> None:
        self._model = model
        self._built_revision: int | None = None
        self._starts: list[float] = []
        self._cum_s: list[float] = []
        self._rates: list[float] = []  # seconds per unit ratio, per segment

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def model(self) -> SegmentModel:
        return self._model

    def cumulative_time_at_ratio(self, ratio: float) -> float:
        """Return the seconds needed to ride from the start to *ratio*.

        *ratio* is clamped to [0.0, 1.0].  The result is non-decreasing in
        *ratio* because every segment has positive speed.
        """
        self._ensure_fresh()
        r = min(1.0, max(0.0, ratio))
        idx = self._model.segment_at_ratio(r).index
        return self._cum_s[idx] + (r - self._starts[idx]) * self._rates[idx]

    def total_duration(self) -> timedelta:
        """Return the projected duration of the whole route."""
        return timedelta(seconds=self.cumulative_time_at_ratio(1.0))

    def ett_from_ratio(self, ratio: float) -> timedelta:
        """Estimated time to travel from *ratio* to the finish."""
        if self._model.geometry.total_distance_m <= 0:
            return timedelta(0)
        remaining = self.cumulative_time_at_ratio(1.0) - self.cumulative_time_at_ratio(ratio)
        return timedelta(seconds=max(0.0, remaining))

    def eta_from_ratio(self, ratio: float, now: datetime) -> datetime:
        """Estimated arrival time when at *ratio* at the instant *now*."""
        return now + self.ett_from_ratio(ratio)

    def plan(self) -> list[SegmentPlan]:
        """Return the per-segment breakdown of the projected ride."""
        self._ensure_fresh()
        geometry = self._model.geometry
        total_km = geometry.total_distance_km
        result: list[SegmentPlan] = []
        for seg in self._model.segments:
            gain, loss = geometry.elevation_change(seg.start_ratio, seg.end_ratio)
            result.append(SegmentPlan(
                index=seg.index,
                color=self._model.color(seg.index),
                start_km=seg.start_ratio * total_km,
                end_km=seg.end_ratio * total_km,
                distance_km=seg.span * total_km,
                speed_kmh=seg.speed_kmh,
                duration_s=seg.span * self._rates[seg.index],
                elevation_gain_m=gain,
                elevation_loss_m=loss,
            ))
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_fresh(self) -> None:
        revision = self._model.revision
        if revision == self._built_revision:
            return
        total_km = self._model.geometry.total_distance_km
        starts: list[float] = []
        cum_s: list[float] = []
        rates: list[float] = []
        t = 0.0
        for seg in self._model.segments:
            rate = total_km / seg.speed_kmh * 3600.0
            starts.append(seg.start_ratio)
            cum_s.append(t)
            rates.append(rate)
            t += seg.span * rate
        self._starts, self._cum_s, self._rates = starts, cum_s, rates
        self._built_revision = revision
        _logger.debug("Projection rebuilt at revision %d: %.0f s total", revision, t)
