"""Track media player events and decide which plays qualify to be logged."""

__version__ = "0.1.0"
__all__ = ["track", "metadata", "events", "monitor"]