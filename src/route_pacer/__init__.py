"""Route Pacer: segment-based route planning and live ride tracking."""

__version__ = "0.1.0"
