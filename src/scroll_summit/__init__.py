"""Scroll Summit: real-time aggregation of scroll height per region."""

__version__ = "0.1.0"
