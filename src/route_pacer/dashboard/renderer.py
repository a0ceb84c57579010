"""Dashboard rendering: display formatting for the live ride panel."""

from __future__ import annotations

from datetime import timedelta

from route_pacer.ride.tracker import TrackerStatus


class DashboardRenderer:
    """Formats :class:`TrackerStatus` for display.

    All methods are pure data transformations with no side effects.
    """

    def format_duration_ms(self, ms: int) -> str:
        """Format milliseconds as ``H:MM:SS``.

        Examples
        --------
        >>> DashboardRenderer().format_duration_ms(3_723_000)
        '1:02:03'
        """
        total_s = max(0, int(ms // 1000))
        hours, rest = divmod(total_s, 3600)
        minutes, seconds = divmod(rest, 60)
        return f"{hours}:{minutes:02d}:{seconds:02d}"

    def format_timedelta(self, td: timedelta | None) -> str:
        if td is None:
            return "--:--:--"
        return self.format_duration_ms(int(td.total_seconds() * 1000))

    def format_speed(self, kmh: float) -> str:
        """Format a speed with one decimal, e.g. ``'23.4 km/h'``."""
        return f"{kmh:.1f} km/h"

    def render(self, status: TrackerStatus) -> dict:
        """Return a display-ready dict from a :class:`TrackerStatus`.

        Returns
        -------
        dict with keys:
            ``state``          – ride state name
            ``moving_time``    – ``H:MM:SS``
            ``total_time``     – ``H:MM:SS``
            ``speed``          – current speed string
            ``avg_speed``      – average moving speed string
            ``distance_km``    – distance ridden, 2 decimals
            ``progress_pct``   – integer 0–100, or None before the first fix
            ``remaining_km``   – float or None
            ``ett``            – ``H:MM:SS`` or placeholder
            ``eta``            – local ``HH:MM`` or placeholder
        """
        ride = status.ride
        return {
            "state": ride.state.value,
            "moving_time": self.format_duration_ms(ride.moving_time_ms),
            "total_time": self.format_duration_ms(ride.total_time_ms),
            "speed": self.format_speed(ride.current_speed_kmh),
            "avg_speed": self.format_speed(ride.average_speed_kmh),
            "distance_km": round(ride.distance_m / 1000.0, 2),
            "progress_pct": None if status.ratio is None else round(status.ratio * 100),
            "remaining_km": None if status.remaining_km is None else round(status.remaining_km, 2),
            "ett": self.format_timedelta(status.ett),
            "eta": "--:--" if status.eta is None else status.eta.astimezone().strftime("%H:%M"),
        }
