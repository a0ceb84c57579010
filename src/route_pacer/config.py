"""Tunable constants for planning, ride tracking and the profile views.

Values can be overridden through ``ROUTE_PACER_*`` environment variables.
Entry points call :func:`dotenv.load_dotenv` before :meth:`Settings.from_env`
so a ``.env`` file in the project root is honoured.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields

DEFAULT_PALETTE: tuple[str, ...] = (
    "#e6194b",
    "#3cb44b",
    "#4363d8",
    "#f58231",
    "#911eb4",
    "#42d4f4",
    "#f032e6",
    "#bfef45",
)


@dataclass(frozen=True)
class Settings:
    """Planner, ride clock and profile view parameters."""

    min_segment_gap: float = 0.01      # ratio, shortest allowed segment
    min_speed_kmh: float = 10.0
    max_speed_kmh: float = 60.0
    default_speed_kmh: float = 25.0
    moving_threshold_kmh: float = 2.0  # strictly above counts as moving
    stale_after_s: float = 10.0        # feed age after which current speed reads 0
    min_zoom: float = 0.05
    max_zoom: float = 1.0
    zoom_step: float = 0.8
    max_elevation_samples: int = 500
    palette: tuple[str, ...] = field(default=DEFAULT_PALETTE)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Build settings from ``ROUTE_PACER_<FIELD>`` variables.

        Unset variables keep their defaults.  The palette is a comma-separated
        list of colours.

        Raises
        ------
        ValueError
            If a numeric variable cannot be parsed.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(f"ROUTE_PACER_{f.name.upper()}")
            if raw is None or raw == "":
                continue
            if f.name == "palette":
                colours = tuple(c.strip() for c in raw.split(",") if c.strip())
                if colours:
                    overrides[f.name] = colours
            elif f.name == "max_elevation_samples":
                overrides[f.name] = int(raw)
            else:
                overrides[f.name] = float(raw)
        return cls(**overrides)
