# src/scroll_summit/models/__init__.py
"""SQLAlchemy models for the Scroll Summit service."""

from .contributor import Contributor
from .history import DailySummary, RawSample

__all__ = [
    "Contributor",
    "DailySummary",
    "RawSample",
]
