"""LiveTracker: routes live positions and ticks to the clock, profile and projection."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from route_pacer.errors import InvalidTransition
from route_pacer.events import EventBus, PositionUpdated
from route_pacer.planning.projection import ProjectionEngine
from route_pacer.profile.view_state import ProfileSnapshot, ProfileViewState
from route_pacer.ride.clock import RideClock
from route_pacer.ride.models import PositionObservation, RideSnapshot, RideState
from route_pacer.route.geometry import haversine_m

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackerStatus:
    """Everything the live dashboard shows at one instant."""

    ride: RideSnapshot
    ratio: float | None
    remaining_km: float | None
    ett: timedelta | None
    eta: datetime | None
    profile: ProfileSnapshot | None


class LiveTracker:
    """Integrates the ride clock, the dashboard profile and the projection.

    Parameters
    ----------
    projection:
        Projection for the planned route; its segment model supplies geometry.
    clock:
        Ride clock.  A fresh one is created when omitted.
    profile:
        Optional dashboard profile view that follows the rider.
    feed:
        Optional :class:`~route_pacer.ride.feed.PositionFeed` drained by
        :meth:`drain`.
    bus:
        Optional event bus for :class:`PositionUpdated`.
    time_source:
        Wall-clock seconds used when a call omits *now*.
    """

    def __init__(
        self,
        projection: ProjectionEngine,
        clock: RideClock | None = None,
        profile: ProfileViewState | None = None,
        feed=None,
        bus: EventBus | None = None,
        time_source: Callable[[], float] = time.time,
    ) -> None:
        self._projection = projection
        self._clock = clock or RideClock(bus=bus, clock=time_source)
        self._profile = profile
        self._feed = feed
        self._bus = bus
        self._time = time_source
        self._ratio: float | None = None
        self._last_obs: PositionObservation | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def clock(self) -> RideClock:
        return self._clock

    @property
    def ratio(self) -> float | None:
        """Latest projected position along the route, or None before the first fix."""
        return self._ratio

    # ------------------------------------------------------------------
    # Ride controls
    # ------------------------------------------------------------------

    def start(self, now: float | None = None) -> bool:
        return self._control("start", now)

    def pause(self, now: float | None = None) -> bool:
        return self._control("pause", now)

    def resume(self, now: float | None = None) -> bool:
        return self._control("resume", now)

    def stop(self, now: float | None = None) -> bool:
        return self._control("stop", now)

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def handle_tick(self, now: float | None = None) -> None:
        self._clock.tick(self._now(now))

    def handle_observation(self, obs: PositionObservation) -> float:
        """Apply one live observation and return the rider's route ratio."""
        distance = obs.distance_m
        if distance is None:
            prev = self._last_obs
            distance = 0.0 if prev is None else haversine_m(prev.lat, prev.lon, obs.lat, obs.lon)
        self._last_obs = obs

        self._clock.observe(obs.speed_kmh, distance, obs.point, now=obs.timestamp)

        geometry = self._projection.model.geometry
        self._ratio = geometry.nearest_ratio(obs.point)
        if self._profile is not None:
            self._profile.live_marker_index(
                self._ratio, ride_active=self._clock.state is RideState.ACTIVE
            )
        if self._bus is not None:
            self._bus.publish(PositionUpdated(
                lat=obs.lat,
                lon=obs.lon,
                ratio=self._ratio,
                speed_kmh=obs.speed_kmh,
                timestamp=obs.timestamp,
            ))
        return self._ratio

    def drain(self, max_events: int | None = None) -> int:
        """Apply every observation currently queued on the feed, in order.

        Returns the number of observations processed (0 without a feed).
        """
        if self._feed is None:
            return 0
        processed = 0
        while max_events is None or processed < max_events:
            obs = self._feed.get_observation(timeout=0.0)
            if obs is None:
                break
            self.handle_observation(obs)
            processed += 1
        return processed

    def status(self, now: float | None = None) -> TrackerStatus:
        """Return the dashboard view at *now*."""
        t = self._now(now)
        ratio = self._ratio
        remaining_km = ett = eta = None
        if ratio is not None:
            geometry = self._projection.model.geometry
            remaining_km = geometry.total_distance_km * (1.0 - ratio)
            ett = self._projection.ett_from_ratio(ratio)
            eta = self._projection.eta_from_ratio(ratio, datetime.fromtimestamp(t, tz=timezone.utc))
        return TrackerStatus(
            ride=self._clock.snapshot(t),
            ratio=ratio,
            remaining_km=remaining_km,
            ett=ett,
            eta=eta,
            profile=self._profile.snapshot() if self._profile is not None else None,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _now(self, now: float | None) -> float:
        return self._time() if now is None else now

    def _control(self, action: str, now: float | None) -> bool:
        try:
            getattr(self._clock, action)(self._now(now))
        except InvalidTransition as exc:
            _logger.warning("Ignored ride control: %s", exc)
            return False
        return True
