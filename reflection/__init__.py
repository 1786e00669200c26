"""Reflection: correlation engine for personal time-series data."""

__version__ = "0.1.0"
