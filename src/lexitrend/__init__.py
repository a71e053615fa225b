"""Lexitrend: learning analytics for vocabulary practice."""

__version__ = "0.1.0"
