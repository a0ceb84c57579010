"""Typed publish/subscribe bus connecting the core models to their renderers.

Each payload type describes one kind of change.  Subscribers register for the
payload types they care about and are called synchronously, in subscription
order, when a matching event is published.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

_logger = logging.getLogger(__name__)

E = TypeVar("E")


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RouteChanged:
    """A new route was accepted; segments and views have been reset."""

    total_distance_m: float
    point_count: int
    sample_count: int


@dataclass(frozen=True)
class SegmentsChanged:
    """The segment list changed (add, remove, boundary drag, speed edit)."""

    revision: int
    reason: str
    """One of ``'add'``, ``'remove'``, ``'boundary'``, ``'speed'``, ``'reset'``."""

    segment_count: int


@dataclass(frozen=True)
class RideStateChanged:
    """The ride clock moved to a new lifecycle state."""

    previous: str
    current: str
    timestamp: float


@dataclass(frozen=True)
class RideTicked:
    """Accumulators advanced after a tick or speed observation."""

    moving_ms: int
    total_ms: int
    timestamp: float


@dataclass(frozen=True)
class PositionUpdated:
    """A live position was applied to the tracker."""

    lat: float
    lon: float
    ratio: float
    speed_kmh: float
    timestamp: float


@dataclass(frozen=True)
class ViewChanged:
    """A profile view's window or markers changed."""

    view: str
    visible_start: int
    visible_end: int
    hover_index: int | None
    live_index: int | None


# ---------------------------------------------------------------------------
# Bus
# ---------------------------------------------------------------------------


class EventBus:
    """Synchronous dispatcher keyed by payload type.

    Dispatch matches the exact payload class; there is no catch-all channel.
    A handler that raises propagates to the publisher after being logged, so
    a broken renderer is never silently ignored.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, event_type: type[E], callback: Callable[[E], None]) -> None:
        """Register *callback* for payloads of exactly *event_type*."""
        self._subscribers[event_type].append(callback)

    def unsubscribe(self, event_type: type[E], callback: Callable[[E], None]) -> None:
        """Remove a previously registered *callback*.  Unknown callbacks are ignored."""
        callbacks = self._subscribers.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def publish(self, event: object) -> int:
        """Deliver *event* to its subscribers and return how many were called."""
        callbacks = list(self._subscribers.get(type(event), ()))
        for cb in callbacks:
            try:
                cb(event)
            except Exception:
                _logger.exception("Subscriber %r failed on %s", cb, type(event).__name__)
                raise
        return len(callbacks)

    def subscriber_count(self, event_type: type) -> int:
        """Return the number of callbacks registered for *event_type*."""
        return len(self._subscribers.get(event_type, ()))
