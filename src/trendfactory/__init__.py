"""Trends Factory: a resumable, state-driven trend video pipeline."""

__version__ = "0.1.0"
