"""Subtitle burn-in: style resolution, timelines and two render strategies."""

__version__ = "0.1.0"
