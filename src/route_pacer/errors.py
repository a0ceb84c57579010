"""Error taxonomy shared by the planning and ride-tracking components."""

from __future__ import annotations


class RoutePacerError(Exception):
    """Base class for every error raised by route_pacer."""


class EmptyRoute(RoutePacerError, ValueError):
    """Raised when a geometry operation is attempted on a degenerate route.

    A route needs at least two points and a non-decreasing distance table.
    The planning session cannot continue; a new route is required.
    """


class SegmentEditRejected(RoutePacerError):
    """Base class for segment edits that were refused.

    The model is left exactly as it was before the edit.
    """


class MinimumGapViolation(SegmentEditRejected):
    """Raised when an edit would leave a segment shorter than the minimum gap."""


class SingleSegmentInvariant(SegmentEditRejected):
    """Raised when removing the only remaining segment."""


class InvalidTransition(RoutePacerError):
    """Raised when a ride control is used in a state that does not allow it."""

    def __init__(self, state: object, action: str) -> None:
        super().__init__(f"Cannot {action} a ride in state {state}")
        self.state = state
        self.action = action
