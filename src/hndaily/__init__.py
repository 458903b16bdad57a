"""Hacker News daily reading digest."""

__version__ = "0.1.0"
