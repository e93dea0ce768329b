# src/scroll_summit/schemas/history.py
"""Schemas for the historical height query surface."""
from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

TimeRange = Literal["1h", "24h", "7d", "30d", "1y", "5y", "all"]
Granularity = Literal["raw", "daily"]


class SeriesPoint(BaseModel):
    """One point of a height series; extremes are present for daily data."""

    time: datetime
    height: str
    min_height: str | None = None
    max_height: str | None = None
    sample_count: int | None = None


class SeriesResponse(BaseModel):
    """Ordered height series for a region or for all regions combined."""

    region: str | None = None
    range: TimeRange
    granularity: Granularity
    data_points: int
    start_date: datetime | None = None
    end_date: datetime | None = None
    data: list[SeriesPoint] = Field(default_factory=list)


class RankingItem(BaseModel):
    region: str
    height: str
    rank: int


class RankingsResponse(BaseModel):
    rankings: list[RankingItem] = Field(default_factory=list)


class StatsResponse(BaseModel):
    """Summary statistics computed from daily history."""

    region: str | None = None
    peak_height: str = "0"
    peak_date: date | None = None
    total_growth: str = "0"
    average_growth_per_day: str = "0"
    days_tracked: int = 0
    current_height: str = "0"
    global_rank: int | None = None


class RegionCompareRequest(BaseModel):
    """Body of a multi-region comparison; limits are checked by the route."""

    regions: list[str] = Field(default_factory=list)
    range: str = "24h"


class RegionCompareResponse(BaseModel):
    range: TimeRange
    regions: dict[str, SeriesResponse] = Field(default_factory=dict)
