# src/scroll_summit/schemas/__init__.py
"""Pydantic schemas for the Scroll Summit API."""

from .contribution import ContributionCreate, ContributionOut, ScrollBatch, SnapshotOut
from .history import (
    RankingItem,
    RankingsResponse,
    RegionCompareRequest,
    RegionCompareResponse,
    SeriesPoint,
    SeriesResponse,
    StatsResponse,
    TimeRange,
)

__all__ = [
    "ContributionCreate",
    "ContributionOut",
    "ScrollBatch",
    "SnapshotOut",
    "RankingItem",
    "RankingsResponse",
    "RegionCompareRequest",
    "RegionCompareResponse",
    "SeriesPoint",
    "SeriesResponse",
    "StatsResponse",
    "TimeRange",
]
