"""Elevation-profile view state."""

from route_pacer.profile.view_state import HoverMarker, ProfileSnapshot, ProfileViewState

__all__ = ["HoverMarker", "ProfileSnapshot", "ProfileViewState"]
