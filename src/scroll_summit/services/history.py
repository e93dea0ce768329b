"""Read-only queries over persisted height history.

Short ranges are served from raw samples, long ranges from daily summaries.
Nothing here touches the in-memory store.
"""
from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import UTC, date, datetime, time, timedelta
from typing import get_args

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from scroll_summit.db.time import ensure_utc, utcnow
from scroll_summit.models import DailySummary, RawSample
from scroll_summit.schemas.history import (
    RankingItem,
    SeriesPoint,
    SeriesResponse,
    StatsResponse,
    TimeRange,
)
from scroll_summit.services.state_store import normalize_region

VALID_TIME_RANGES: tuple[str, ...] = get_args(TimeRange)
RAW_RANGES = frozenset({"1h", "24h", "7d"})
MAX_REGIONS_COMPARISON = 10

_RANGE_SPANS: dict[str, timedelta | None] = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "1y": timedelta(days=365),
    "5y": timedelta(days=5 * 365),
    "all": None,
}

SECONDS_PER_DAY = 86_400


def time_ago(range_: str, now: datetime | None = None) -> datetime | None:
    """Start of the window for `range_`; None means unbounded."""
    if range_ not in _RANGE_SPANS:
        raise ValueError(f"Invalid time range: {range_}")
    span = _RANGE_SPANS[range_]
    if span is None:
        return None
    return (now or utcnow()) - span


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def get_series(
    db: Session,
    range_: str,
    region: str | None = None,
    now: datetime | None = None,
) -> SeriesResponse:
    """Height series for one region, or summed across regions when `region` is None.

    Combined daily points sum the region averages but keep the lowest minimum
    and the highest maximum of any region that day.

    Raises:
        ValueError: If `range_` is not a supported time range.
    """
    since = time_ago(range_, now)
    if range_ in RAW_RANGES and since is not None:
        points = _raw_series(db, since, region)
        granularity = "raw"
    else:
        points = _daily_series(db, since, region)
        granularity = "daily"

    return SeriesResponse(
        region=region,
        range=range_,
        granularity=granularity,
        data_points=len(points),
        start_date=points[0].time if points else None,
        end_date=points[-1].time if points else None,
        data=points,
    )


def compare_regions(
    db: Session,
    regions: Sequence[str],
    range_: str,
    now: datetime | None = None,
) -> dict[str, SeriesResponse]:
    """Series for several regions over the same range, keyed by region code.

    Codes are normalised and de-duplicated in request order.

    Raises:
        ValueError: If no region is given, more than `MAX_REGIONS_COMPARISON`
            are given, a code is invalid or `range_` is not supported.
    """
    time_ago(range_, now)
    if not regions:
        raise ValueError("at least one region is required")
    if len(regions) > MAX_REGIONS_COMPARISON:
        raise ValueError(f"at most {MAX_REGIONS_COMPARISON} regions can be compared at once")
    codes = list(dict.fromkeys(normalize_region(code) for code in regions))
    return {code: get_series(db, range_, code, now) for code in codes}


def _raw_series(db: Session, since: datetime, region: str | None) -> list[SeriesPoint]:
    if region is not None:
        rows = db.execute(
            select(RawSample.recorded_at, RawSample.height)
            .where(RawSample.region_code == region, RawSample.recorded_at >= since)
            .order_by(RawSample.recorded_at, RawSample.id)
        ).all()
    else:
        rows = db.execute(
            select(RawSample.recorded_at, func.sum(RawSample.height))
            .where(RawSample.recorded_at >= since)
            .group_by(RawSample.recorded_at)
            .order_by(RawSample.recorded_at)
        ).all()
    return [
        SeriesPoint(time=ensure_utc(recorded_at), height=str(int(height)))
        for recorded_at, height in rows
    ]


def _daily_series(db: Session, since: datetime | None, region: str | None) -> list[SeriesPoint]:
    if region is not None:
        stmt = select(
            DailySummary.day,
            DailySummary.average_height,
            DailySummary.min_height,
            DailySummary.max_height,
            DailySummary.sample_count,
        ).where(DailySummary.region_code == region)
    else:
        stmt = select(
            DailySummary.day,
            func.sum(DailySummary.average_height),
            func.min(DailySummary.min_height),
            func.max(DailySummary.max_height),
            func.sum(DailySummary.sample_count),
        ).group_by(DailySummary.day)

    if since is not None:
        stmt = stmt.where(DailySummary.day >= since.date())
    rows = db.execute(stmt.order_by(DailySummary.day)).all()

    return [
        SeriesPoint(
            time=_day_start(day),
            height=str(int(average)),
            min_height=str(int(minimum)),
            max_height=str(int(maximum)),
            sample_count=int(count),
        )
        for day, average, minimum, maximum, count in rows
    ]


def _latest_raw_heights(db: Session) -> dict[str, int]:
    latest = (
        select(RawSample.region_code, func.max(RawSample.recorded_at).label("latest_at"))
        .group_by(RawSample.region_code)
        .subquery()
    )
    rows = db.execute(
        select(RawSample.region_code, RawSample.height).join(
            latest,
            (RawSample.region_code == latest.c.region_code)
            & (RawSample.recorded_at == latest.c.latest_at),
        )
    ).all()
    return {region: int(height) for region, height in rows}


def _latest_daily_heights(db: Session) -> dict[str, int]:
    latest = (
        select(DailySummary.region_code, func.max(DailySummary.day).label("latest_day"))
        .group_by(DailySummary.region_code)
        .subquery()
    )
    rows = db.execute(
        select(DailySummary.region_code, DailySummary.average_height).join(
            latest,
            (DailySummary.region_code == latest.c.region_code)
            & (DailySummary.day == latest.c.latest_day),
        )
    ).all()
    return {region: int(height) for region, height in rows}


def latest_heights(db: Session) -> dict[str, int]:
    """Latest known height per region: newest raw sample, else newest daily average."""
    heights = _latest_daily_heights(db)
    heights.update(_latest_raw_heights(db))
    return heights


def get_latest_height(db: Session, region: str | None = None) -> int:
    heights = latest_heights(db)
    if region is not None:
        return heights.get(region, 0)
    return sum(heights.values())


def get_rankings(db: Session) -> list[RankingItem]:
    """Regions ordered by latest known height, highest first."""
    ordered = sorted(latest_heights(db).items(), key=lambda item: (-item[1], item[0]))
    return [
        RankingItem(region=region, height=str(height), rank=index)
        for index, (region, height) in enumerate(ordered, start=1)
    ]


def get_stats(db: Session, region: str | None = None, now: datetime | None = None) -> StatsResponse:
    """Peak, growth and tracking span derived from daily summaries.

    Returns zeroed statistics rather than raising when no summary exists yet.
    """
    current = now or utcnow()
    daily = _daily_series(db, None, region)
    global_rank = None
    if region is not None:
        global_rank = next(
            (item.rank for item in get_rankings(db) if item.region == region),
            None,
        )

    current_height = get_latest_height(db, region)
    if not daily:
        return StatsResponse(
            region=region,
            current_height=str(current_height),
            global_rank=global_rank,
        )

    peak = max(daily, key=lambda point: int(point.max_height or point.height))
    first, latest = daily[0], daily[-1]
    days_tracked = math.ceil((current - first.time).total_seconds() / SECONDS_PER_DAY)
    total_growth = int(latest.height) - int(first.height)
    average_growth = round(total_growth / days_tracked) if days_tracked > 0 else 0

    return StatsResponse(
        region=region,
        peak_height=peak.max_height or peak.height,
        peak_date=peak.time.date(),
        total_growth=str(total_growth),
        average_growth_per_day=str(average_growth),
        days_tracked=days_tracked,
        current_height=str(current_height),
        global_rank=global_rank,
    )
