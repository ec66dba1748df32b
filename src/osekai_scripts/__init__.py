"""Osekai data collection scripts."""

__version__ = "0.1.0"
