"""RideClock: ride lifecycle and the moving/total time accumulators.

The clock is a pure state-transition function, :func:`transition`, over
immutable :class:`ClockState` values.  :class:`RideClock` wraps it with a
current state, default timestamps and event publishing.

Accumulation rule: every tick or speed observation while ACTIVE adds the
time elapsed since the previous one to the total.  The same time is added to
moving time only when the *most recent earlier* speed observation was above
the moving threshold.  An observation is applied after the elapsed time has
been booked, so it governs the time that follows it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

from route_pacer.config import Settings
from route_pacer.errors import InvalidTransition
from route_pacer.events import EventBus, RideStateChanged, RideTicked
from route_pacer.ride.models import RideSnapshot, RideState
from route_pacer.route.models import GeoPoint

_logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Start:
    now: float


@dataclass(frozen=True)
class Pause:
    now: float


@dataclass(frozen=True)
class Resume:
    now: float


@dataclass(frozen=True)
class Stop:
    now: float


@dataclass(frozen=True)
class Tick:
    """Wall-clock tick, normally once per second."""

    now: float


@dataclass(frozen=True)
class Observe:
    """Live speed observation with the distance covered since the last one."""

    now: float
    speed_kmh: float
    distance_m: float = 0.0
    position: GeoPoint | None = None


ClockEvent = Start | Pause | Resume | Stop | Tick | Observe


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClockState:
    """Everything the clock knows about one ride."""

    state: RideState = RideState.IDLE
    start_timestamp: float | None = None
    moving_ms: float = 0.0
    total_ms: float = 0.0
    last_tick_timestamp: float | None = None
    last_speed_kmh: float = 0.0
    last_observation_timestamp: float | None = None
    last_position: GeoPoint | None = None
    distance_m: float = 0.0


def _accumulate(s: ClockState, now: float, threshold_kmh: float) -> ClockState:
    """Book the time elapsed since the last tick (ACTIVE only)."""
    if s.state is not RideState.ACTIVE or s.last_tick_timestamp is None:
        return s
    elapsed_ms = max(0.0, now - s.last_tick_timestamp) * 1000.0
    moving_ms = s.moving_ms + elapsed_ms if s.last_speed_kmh > threshold_kmh else s.moving_ms
    return replace(
        s,
        total_ms=s.total_ms + elapsed_ms,
        moving_ms=moving_ms,
        last_tick_timestamp=max(s.last_tick_timestamp, now),
    )


def transition(
    s: ClockState,
    event: ClockEvent,
    moving_threshold_kmh: float = 2.0,
) -> ClockState:
    """Return the state that follows *s* after *event*.

    Raises
    ------
    InvalidTransition
        When a lifecycle event is not allowed in the current state.
    """
    if isinstance(event, Start):
        if s.state is not RideState.IDLE:
            raise InvalidTransition(s.state, "start")
        return replace(
            s,
            state=RideState.ACTIVE,
            start_timestamp=event.now,
            moving_ms=0.0,
            total_ms=0.0,
            last_tick_timestamp=event.now,
            distance_m=0.0,
        )

    if isinstance(event, Pause):
        if s.state is not RideState.ACTIVE:
            raise InvalidTransition(s.state, "pause")
        return replace(_accumulate(s, event.now, moving_threshold_kmh), state=RideState.PAUSED)

    if isinstance(event, Resume):
        if s.state is not RideState.PAUSED:
            raise InvalidTransition(s.state, "resume")
        return replace(s, state=RideState.ACTIVE, last_tick_timestamp=event.now)

    if isinstance(event, Stop):
        if s.state not in (RideState.ACTIVE, RideState.PAUSED):
            raise InvalidTransition(s.state, "stop")
        return replace(_accumulate(s, event.now, moving_threshold_kmh), state=RideState.STOPPED)

    if isinstance(event, Tick):
        return _accumulate(s, event.now, moving_threshold_kmh)

    if isinstance(event, Observe):
        if s.state is RideState.STOPPED:
            return s
        s = _accumulate(s, event.now, moving_threshold_kmh)
        distance = s.distance_m
        if s.state is RideState.ACTIVE:
            distance += max(0.0, event.distance_m)
        return replace(
            s,
            last_speed_kmh=max(0.0, event.speed_kmh),
            last_observation_timestamp=event.now,
            last_position=event.position if event.position is not None else s.last_position,
            distance_m=distance,
        )

    raise TypeError(f"Unknown clock event: {event!r}")


# ---------------------------------------------------------------------------
# Stateful wrapper
# ---------------------------------------------------------------------------


class RideClock:
    """Tracks one ride from start to stop.

    Parameters
    ----------
    settings:
        Supplies ``moving_threshold_kmh`` and ``stale_after_s``.
    bus:
        Optional event bus for :class:`RideStateChanged` / :class:`RideTicked`.
    clock:
        Source of wall-clock seconds when a call omits *now*.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        bus: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or Settings()
        self._bus = bus
        self._clock = clock
        self._state = ClockState()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> RideState:
        return self._state.state

    @property
    def data(self) -> ClockState:
        return self._state

    def start(self, now: float | None = None) -> None:
        self._apply(Start(self._now(now)))

    def pause(self, now: float | None = None) -> None:
        self._apply(Pause(self._now(now)))

    def resume(self, now: float | None = None) -> None:
        self._apply(Resume(self._now(now)))

    def stop(self, now: float | None = None) -> None:
        self._apply(Stop(self._now(now)))

    def tick(self, now: float | None = None) -> None:
        self._apply(Tick(self._now(now)))

    def observe(
        self,
        speed_kmh: float,
        distance_m: float = 0.0,
        position: GeoPoint | None = None,
        now: float | None = None,
    ) -> None:
        """Record a live speed observation."""
        self._apply(Observe(self._now(now), speed_kmh, distance_m, position))

    def current_speed_kmh(self, now: float | None = None) -> float:
        """Most recent observed speed, or 0.0 when the feed has gone stale."""
        last = self._state.last_observation_timestamp
        if last is None:
            return 0.0
        if self._now(now) - last > self._settings.stale_after_s:
            return 0.0
        return self._state.last_speed_kmh

    def average_speed_kmh(self) -> float:
        """Distance over *moving* time, so stops do not dilute the average."""
        hours = self._state.moving_ms / 3_600_000.0
        if hours <= 0:
            return 0.0
        return (self._state.distance_m / 1000.0) / hours

    def snapshot(self, now: float | None = None) -> RideSnapshot:
        s = self._state
        return RideSnapshot(
            state=s.state,
            moving_time_ms=int(round(s.moving_ms)),
            total_time_ms=int(round(s.total_ms)),
            current_speed_kmh=self.current_speed_kmh(now),
            average_speed_kmh=self.average_speed_kmh(),
            distance_m=s.distance_m,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _now(self, now: float | None) -> float:
        return self._clock() if now is None else now

    def _apply(self, event: ClockEvent) -> None:
        previous = self._state
        self._state = transition(previous, event, self._settings.moving_threshold_kmh)
        changed = self._state.state is not previous.state
        if changed:
            _logger.info("Ride %s -> %s", previous.state, self._state.state)
        if self._bus is None:
            return
        if changed:
            self._bus.publish(RideStateChanged(
                previous=previous.state.value,
                current=self._state.state.value,
                timestamp=event.now,
            ))
        elif self._state.total_ms != previous.total_ms:
            self._bus.publish(RideTicked(
                moving_ms=int(round(self._state.moving_ms)),
                total_ms=int(round(self._state.total_ms)),
                timestamp=event.now,
            ))
