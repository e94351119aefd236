"""Weed Tracker — consumption log, rolling statistics and goal tracking."""

__version__ = "1.0.0"
