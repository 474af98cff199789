"""Adaptive practice scheduler for typing patterns."""

__version__ = "0.1.0"
