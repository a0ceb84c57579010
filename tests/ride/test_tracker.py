"""Tests for LiveTracker: observations, controls, status and feed draining."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from route_pacer.events import EventBus, PositionUpdated
from route_pacer.planning.projection import ProjectionEngine
from route_pacer.planning.segments import SegmentModel
from route_pacer.profile.view_state import ProfileViewState
from route_pacer.ride.models import PositionObservation, RideState
from route_pacer.ride.tracker import LiveTracker
from route_pacer.route.geometry import GeometryIndex, haversine_m
from route_pacer.route.models import ElevationSample, GeoPoint, RoutePolyline

M_PER_DEG = haversine_m(0.0, 0.0, 0.0, 1.0)


def make_geometry(total_m: float = 10_000.0, n: int = 11) -> GeometryIndex:
    step = total_m / (n - 1)
    points = [GeoPoint(0.0, i * step / M_PER_DEG) for i in range(n)]
    samples = [ElevationSample(p.lat, p.lon, 100.0 + i) for i, p in enumerate(points)]
    return GeometryIndex(RoutePolyline(points=points, distances_m=[i * step for i in range(n)]), samples)


def obs_at(geometry: GeometryIndex, vertex: int, t: float, speed: float = 20.0, **kw) -> PositionObservation:
    p = geometry.points[vertex]
    return PositionObservation(lat=p.lat, lon=p.lon, speed_kmh=speed, timestamp=t, **kw)


@pytest.fixture
def geometry() -> GeometryIndex:
    return make_geometry()


@pytest.fixture
def tracker(geometry) -> LiveTracker:
    return LiveTracker(ProjectionEngine(SegmentModel(geometry)), time_source=lambda: 0.0)


# ---------------------------------------------------------------------------
# Observations
# ---------------------------------------------------------------------------


def test_observation_sets_route_ratio(tracker, geometry):
    tracker.start(now=0.0)
    assert tracker.ratio is None
    assert tracker.handle_observation(obs_at(geometry, 5, 1.0)) == pytest.approx(0.5)
    assert tracker.ratio == pytest.approx(0.5)


def test_distance_measured_between_fixes(tracker, geometry):
    tracker.start(now=0.0)
    tracker.handle_observation(obs_at(geometry, 0, 1.0))
    tracker.handle_observation(obs_at(geometry, 2, 2.0))
    assert tracker.clock.data.distance_m == pytest.approx(2_000.0, rel=1e-6)


def test_feed_supplied_distance_wins(tracker, geometry):
    tracker.start(now=0.0)
    tracker.handle_observation(obs_at(geometry, 0, 1.0))
    tracker.handle_observation(obs_at(geometry, 2, 2.0, distance_m=1_234.0))
    assert tracker.clock.data.distance_m == pytest.approx(1_234.0)


def test_observation_publishes_position(geometry):
    bus = EventBus()
    received: list[PositionUpdated] = []
    bus.subscribe(PositionUpdated, received.append)
    tracker = LiveTracker(ProjectionEngine(SegmentModel(geometry)), bus=bus)

    tracker.handle_observation(obs_at(geometry, 3, 7.0, speed=14.0))

    (event,) = received
    assert event.ratio == pytest.approx(0.3)
    assert event.speed_kmh == 14.0
    assert event.timestamp == 7.0


# ---------------------------------------------------------------------------
# Controls
# ---------------------------------------------------------------------------


def test_controls_report_success(tracker):
    assert tracker.start(now=0.0) is True
    assert tracker.pause(now=1.0) is True
    assert tracker.resume(now=2.0) is True
    assert tracker.stop(now=3.0) is True
    assert tracker.clock.state is RideState.STOPPED


def test_refused_control_is_logged_not_raised(tracker, caplog):
    with caplog.at_level("WARNING", logger="route_pacer.ride.tracker"):
        assert tracker.pause(now=0.0) is False
    assert tracker.clock.state is RideState.IDLE
    assert "Cannot pause a ride in state idle" in caplog.text


def test_tick_drives_clock(tracker):
    tracker.start(now=0.0)
    tracker.handle_tick(now=3.0)
    assert tracker.clock.data.total_ms == 3000.0


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


def test_status_before_first_fix(tracker):
    status = tracker.status(now=0.0)
    assert status.ratio is None
    assert status.remaining_km is None
    assert status.ett is None
    assert status.eta is None
    assert status.profile is None


def test_status_projects_remaining_time(tracker, geometry):
    tracker.start(now=1_000.0)
    tracker.handle_observation(obs_at(geometry, 5, 1_060.0))
    status = tracker.status(now=1_060.0)
    assert status.remaining_km == pytest.approx(5.0)
    assert status.ett == timedelta(minutes=12)
    assert status.eta.timestamp() == pytest.approx(1_060.0 + 12 * 60)
    assert status.ride.total_time_ms == 60_000


def test_status_includes_profile(geometry):
    profile = ProfileViewState(geometry, name="dashboard")
    tracker = LiveTracker(ProjectionEngine(SegmentModel(geometry)), profile=profile)
    tracker.start(now=0.0)
    tracker.handle_observation(obs_at(geometry, 4, 1.0))
    assert tracker.status(now=1.0).profile.live_index == 4


def test_active_ride_follows_rider_on_profile(geometry):
    profile = ProfileViewState(geometry, name="dashboard")
    profile.zoom_in()
    profile.zoom_in()
    tracker = LiveTracker(ProjectionEngine(SegmentModel(geometry)), profile=profile)
    tracker.start(now=0.0)

    tracker.handle_observation(obs_at(geometry, 10, 1.0))

    start, end = profile.visible_range()
    assert start <= 10 < end


def test_idle_ride_does_not_move_profile(geometry):
    profile = ProfileViewState(geometry, name="dashboard")
    profile.zoom_in()
    profile.zoom_in()
    before = profile.visible_range()
    tracker = LiveTracker(ProjectionEngine(SegmentModel(geometry)), profile=profile)

    tracker.handle_observation(obs_at(geometry, 10, 1.0))

    assert profile.visible_range() == before
    assert profile.live_index == 10


# ---------------------------------------------------------------------------
# Feed draining
# ---------------------------------------------------------------------------


def test_drain_applies_queued_observations_in_order(geometry):
    queued = [obs_at(geometry, i, float(i)) for i in (1, 2, 3)]
    feed = MagicMock()
    feed.get_observation.side_effect = queued + [None]
    tracker = LiveTracker(ProjectionEngine(SegmentModel(geometry)), feed=feed)
    tracker.start(now=0.0)

    assert tracker.drain() == 3
    assert tracker.ratio == pytest.approx(0.3)
    assert tracker.clock.data.total_ms == 3000.0


def test_drain_respects_limit(geometry):
    feed = MagicMock()
    feed.get_observation.side_effect = [obs_at(geometry, i, float(i)) for i in (1, 2, 3)]
    tracker = LiveTracker(ProjectionEngine(SegmentModel(geometry)), feed=feed)
    assert tracker.drain(max_events=2) == 2
    assert tracker.ratio == pytest.approx(0.2)


def test_drain_without_feed(tracker):
    assert tracker.drain() == 0
