"""Display formatting for the live ride dashboard."""

from route_pacer.dashboard.renderer import DashboardRenderer

__all__ = ["DashboardRenderer"]
