"""Live ride tracking.

Public API
----------
RideState          - ride lifecycle enum
RideClock          - moving/total time accumulators
transition         - pure state-transition function behind RideClock
PositionObservation - one live position + speed sample
PositionFeed       - background poller for a live position source
LiveTracker        - dispatches observations and ticks to clock, profile, projection
"""

from route_pacer.ride.clock import ClockState, RideClock, transition
from route_pacer.ride.feed import PositionFeed
from route_pacer.ride.models import PositionObservation, RideSnapshot, RideState
from route_pacer.ride.tracker import LiveTracker, TrackerStatus

__all__ = [
    "ClockState",
    "LiveTracker",
    "PositionFeed",
    "PositionObservation",
    "RideClock",
    "RideSnapshot",
    "RideState",
    "TrackerStatus",
    "transition",
]
