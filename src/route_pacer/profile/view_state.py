"""ProfileViewState: zoom, pan and markers for one elevation-profile view.

The visible window is expressed in *sample space*: ``pan_offset`` and
``zoom_factor`` are fractions of the elevation-sample array, and the window
``[pan_offset, pan_offset + zoom_factor]`` always stays inside [0, 1].
Hover maps the canvas onto the drawn samples, so the left edge lands on the
first visible sample and the right edge on the last one.

Two views (for example the planner and the live dashboard) each own an
instance over the same samples and never share zoom or pan.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from route_pacer.config import Settings
from route_pacer.events import EventBus, ViewChanged
from route_pacer.route.geometry import GeometryIndex
from route_pacer.route.models import GeoPoint

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HoverMarker:
    """Where the pointer on the profile lands on the map.

    ``kind`` is always ``"hover"`` so renderers draw it with a different glyph
    from the ``"live"`` rider marker.
    """

    ratio: float
    sample_index: int | None
    point: GeoPoint
    kind: str = "hover"


@dataclass(frozen=True)
class ProfileSnapshot:
    """Render state of one profile view.

    ``visible_end`` is exclusive.
    """

    view: str
    visible_start: int
    visible_end: int
    hover_index: int | None
    live_index: int | None
    zoom_factor: float
    pan_offset: float


class ProfileViewState:
    """Zoom/pan window plus hover and live markers over elevation samples.

    Parameters
    ----------
    geometry:
        Route geometry holding the elevation samples.
    name:
        View identifier used in published :class:`ViewChanged` events.
    settings:
        Zoom bounds and step.
    bus:
        Optional event bus.
    """

    def __init__(
        self,
        geometry: GeometryIndex,
        name: str = "profile",
        settings: Settings | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._geometry = geometry
        self.name = name
        self._settings = settings or Settings()
        self._bus = bus
        self.zoom_factor = self._settings.max_zoom
        self.pan_offset = 0.0
        self.hover_index: int | None = None
        self.live_index: int | None = None
        self._follow_suppressed = False

    # ------------------------------------------------------------------
    # Zoom / pan
    # ------------------------------------------------------------------

    def zoom_in(self) -> float:
        """Narrow the window by one step around its centre."""
        return self._set_zoom(self.zoom_factor * self._settings.zoom_step)

    def zoom_out(self) -> float:
        """Widen the window by one step around its centre."""
        return self._set_zoom(self.zoom_factor / self._settings.zoom_step)

    def pan(self, delta_fraction: float) -> float:
        """Shift the window by *delta_fraction* of its own width.

        Panning past either end is silently clamped.  A user pan suspends
        auto-follow until the next live position update.
        """
        self._follow_suppressed = True
        self.pan_offset = self._clamp_pan(self.pan_offset + delta_fraction * self.zoom_factor)
        self._changed()
        return self.pan_offset

    def reset(self) -> None:
        """Show the whole profile again and drop the hover marker."""
        self.zoom_factor = self._settings.max_zoom
        self.pan_offset = 0.0
        self.hover_index = None
        self._follow_suppressed = False
        self._changed()

    def visible_range(self) -> tuple[int, int]:
        """Return ``(start, end)`` sample indices of the window, end exclusive."""
        n = self._geometry.sample_count
        if n == 0:
            return 0, 0
        window = min(n, max(1, round(n * self.zoom_factor)))
        start = min(n - window, max(0, round(self.pan_offset * n)))
        return start, start + window

    # ------------------------------------------------------------------
    # Markers
    # ------------------------------------------------------------------

    def hover_to_position(self, pixel_x: float, canvas_width: float) -> HoverMarker:
        """Map a pointer position on the profile canvas to a route position.

        Raises
        ------
        ValueError
            If *canvas_width* is not positive.
        """
        if canvas_width <= 0:
            raise ValueError(f"canvas_width must be positive, got {canvas_width}")
        frac = min(1.0, max(0.0, pixel_x / canvas_width))
        start, end = self.visible_range()
        if end > start:
            # Canvas edges sit on the first and last drawn samples.
            pos = start + frac * (end - 1 - start)
            ratio = self._route_ratio(pos)
            self.hover_index = int(math.floor(pos + 0.5))
        else:
            ratio = min(1.0, self.pan_offset + frac * self.zoom_factor)
            self.hover_index = None
        self._follow_suppressed = True
        self._changed()
        return HoverMarker(
            ratio=ratio,
            sample_index=self.hover_index,
            point=self._geometry.point_at_ratio(ratio),
        )

    def clear_hover(self) -> None:
        self.hover_index = None
        self._changed()

    def live_marker_index(self, ratio: float, ride_active: bool = False) -> int | None:
        """Place the live marker at route *ratio* and return its sample index.

        During an active ride the window is re-centred on the marker when it
        falls outside the visible range, unless the user has hovered or panned
        since the previous update.  That suspension covers exactly one update.
        """
        idx = self._geometry.sample_index_at_ratio(ratio)
        self.live_index = idx
        if idx is not None and ride_active and not self._follow_suppressed:
            start, end = self.visible_range()
            if not start <= idx < end:
                n = self._geometry.sample_count
                self.pan_offset = self._clamp_pan((idx + 0.5) / n - self.zoom_factor / 2)
                _logger.debug("View %s follows live marker to sample %d", self.name, idx)
        self._follow_suppressed = False
        self._changed()
        return idx

    def update_live_point(self, point: GeoPoint, ride_active: bool = False) -> int | None:
        """Like :meth:`live_marker_index` for a raw coordinate."""
        return self.live_marker_index(self._geometry.nearest_ratio(point), ride_active)

    def snapshot(self) -> ProfileSnapshot:
        start, end = self.visible_range()
        return ProfileSnapshot(
            view=self.name,
            visible_start=start,
            visible_end=end,
            hover_index=self.hover_index,
            live_index=self.live_index,
            zoom_factor=self.zoom_factor,
            pan_offset=self.pan_offset,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _set_zoom(self, zoom: float) -> float:
        centre = self.pan_offset + self.zoom_factor / 2
        self.zoom_factor = min(self._settings.max_zoom, max(self._settings.min_zoom, zoom))
        self.pan_offset = self._clamp_pan(centre - self.zoom_factor / 2)
        self._changed()
        return self.zoom_factor

    def _clamp_pan(self, offset: float) -> float:
        return min(max(0.0, 1.0 - self.zoom_factor), max(0.0, offset))

    def _route_ratio(self, index_pos: float) -> float:
        """Convert a fractional sample index to a route ratio."""
        ratios = self._geometry.sample_ratios
        if len(ratios) < 2:
            return ratios[0] if ratios else 0.0
        i = min(len(ratios) - 2, max(0, int(math.floor(index_pos))))
        t = index_pos - i
        return ratios[i] + t * (ratios[i + 1] - ratios[i])

    def _changed(self) -> None:
        if self._bus is None:
            return
        start, end = self.visible_range()
        self._bus.publish(ViewChanged(
            view=self.name,
            visible_start=start,
            visible_end=end,
            hover_index=self.hover_index,
            live_index=self.live_index,
        ))
