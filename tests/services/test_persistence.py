"""Tests for raw flushing and daily compaction."""

from datetime import UTC, date, datetime, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from scroll_summit.core.errors import DataIntegrityError
from scroll_summit.core.settings import Settings
from scroll_summit.models import DailySummary, RawSample
from scroll_summit.services.history import get_series
from scroll_summit.services.persistence import (
    CompactionReport,
    CompactionWorker,
    DailyAggregate,
    RawFlushWorker,
    compact,
    flush_raw,
    rounded_mean,
)

DAY = date(2025, 1, 1)
NOW = datetime(2025, 1, 3, 4, 0, tzinfo=UTC)


def _at(hour: int, day: date = DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, tzinfo=UTC)


def _add_raw(session_factory, *samples: tuple[str, int, datetime]) -> None:
    with session_factory() as db:
        db.add_all(
            RawSample(region_code=region, height=height, recorded_at=recorded_at)
            for region, height, recorded_at in samples
        )
        db.commit()


def _count(session_factory, model) -> int:
    with session_factory() as db:
        return db.execute(select(func.count()).select_from(model)).scalar_one()


def test_rounded_mean_rounds_half_up() -> None:
    assert rounded_mean(3, 2) == 2
    assert rounded_mean(5, 2) == 3
    assert rounded_mean(10, 3) == 3
    assert rounded_mean(10**30 + 1, 2) == 5 * 10**29 + 1


def test_daily_aggregate_merge_weights_by_count() -> None:
    existing = DailyAggregate(average_height=100, min_height=90, max_height=110, sample_count=2)
    late = DailyAggregate.from_heights([400])
    merged = existing.merge(late)
    assert merged == DailyAggregate(
        average_height=200, min_height=90, max_height=400, sample_count=3
    )


def test_daily_aggregate_of_empty_bucket() -> None:
    with pytest.raises(ValueError):
        DailyAggregate.from_heights([])


def test_flush_writes_one_row_per_region_including_zero(store, session_factory) -> None:
    store.increment("TH", 100)
    store.increment("JP", 0)

    assert flush_raw(store, session_factory, now=NOW) == 2

    with session_factory() as db:
        rows = db.execute(select(RawSample).order_by(RawSample.region_code)).scalars().all()
    assert [(row.region_code, row.height) for row in rows] == [("JP", 0), ("TH", 100)]


def test_flush_without_regions_is_noop(store, session_factory) -> None:
    assert flush_raw(store, session_factory) == 0
    assert _count(session_factory, RawSample) == 0


@pytest.mark.asyncio
async def test_raw_flush_worker_runs_in_thread(store, session_factory) -> None:
    store.increment("TH", 5)
    worker = RawFlushWorker(store, interval_seconds=30, session_factory=session_factory)
    await worker.run_once()
    assert _count(session_factory, RawSample) == 1


def test_compaction_folds_old_rows_into_daily_summary(session_factory) -> None:
    _add_raw(
        session_factory,
        ("TH", 100, _at(10)),
        ("TH", 201, _at(11)),
        ("JP", 50, _at(12)),
        ("TH", 999, NOW - timedelta(hours=1)),
    )

    report = compact(session_factory, cutoff=NOW - timedelta(hours=24))

    assert report == CompactionReport(summaries_created=2, summaries_merged=0, raw_rows_deleted=3)
    with session_factory() as db:
        summary = db.execute(
            select(DailySummary).where(DailySummary.region_code == "TH")
        ).scalar_one()
        remaining = db.execute(select(RawSample)).scalars().all()
    assert summary.day == DAY
    assert (summary.average_height, summary.min_height, summary.max_height) == (151, 100, 201)
    assert summary.sample_count == 2
    assert [row.height for row in remaining] == [999]


def test_compaction_rerun_is_idempotent(session_factory) -> None:
    _add_raw(session_factory, ("TH", 100, _at(10)), ("TH", 200, _at(11)))
    cutoff = NOW - timedelta(hours=24)

    compact(session_factory, cutoff=cutoff)
    second = compact(session_factory, cutoff=cutoff)

    assert second == CompactionReport()
    assert _count(session_factory, DailySummary) == 1
    assert _count(session_factory, RawSample) == 0


def test_late_rows_merge_into_existing_summary(session_factory) -> None:
    with session_factory() as db:
        db.add(
            DailySummary(
                region_code="TH",
                day=DAY,
                average_height=100,
                min_height=90,
                max_height=110,
                sample_count=2,
                recorded_at=_at(1),
            )
        )
        db.commit()
    _add_raw(session_factory, ("TH", 400, _at(23)))

    report = compact(session_factory, cutoff=NOW - timedelta(hours=24))

    assert report.summaries_merged == 1
    assert report.summaries_created == 0
    with session_factory() as db:
        summary = db.execute(select(DailySummary)).scalar_one()
    assert summary.average_height == 200
    assert (summary.min_height, summary.max_height, summary.sample_count) == (90, 400, 3)


def test_samples_split_on_utc_day_boundary(session_factory) -> None:
    _add_raw(
        session_factory,
        ("TH", 10, datetime(2025, 1, 1, 23, 59, tzinfo=UTC)),
        ("TH", 20, datetime(2025, 1, 2, 0, 0, tzinfo=UTC)),
    )
    compact(session_factory, cutoff=NOW)
    with session_factory() as db:
        days = db.execute(select(DailySummary.day).order_by(DailySummary.day)).scalars().all()
    assert days == [date(2025, 1, 1), date(2025, 1, 2)]


def test_integrity_failure_leaves_raw_rows(session_factory, mocker) -> None:
    _add_raw(session_factory, ("TH", 100, _at(10)))
    mocker.patch(
        "scroll_summit.services.persistence._write_summaries",
        side_effect=DataIntegrityError("2 daily summaries found for TH"),
    )

    with pytest.raises(DataIntegrityError):
        compact(session_factory, cutoff=NOW)

    assert _count(session_factory, RawSample) == 1
    assert _count(session_factory, DailySummary) == 0


def test_compaction_worker_schedule(session_factory) -> None:
    worker = CompactionWorker(run_hour_utc=3, session_factory=session_factory)
    assert not worker.is_due(datetime(2025, 1, 3, 2, 59, tzinfo=UTC))
    assert worker.is_due(datetime(2025, 1, 3, 3, 0, tzinfo=UTC))

    assert worker.maybe_run(datetime(2025, 1, 3, 3, 0, tzinfo=UTC)) == CompactionReport()
    assert not worker.is_due(datetime(2025, 1, 3, 4, 0, tzinfo=UTC))
    assert worker.is_due(datetime(2025, 1, 4, 3, 0, tzinfo=UTC))


def test_compaction_worker_uses_retention_window(session_factory) -> None:
    _add_raw(
        session_factory,
        ("TH", 100, NOW - timedelta(hours=25)),
        ("TH", 200, NOW - timedelta(hours=23)),
    )
    worker = CompactionWorker(retention=timedelta(hours=24), session_factory=session_factory)

    report = worker.run_compaction_now(NOW)

    assert report.raw_rows_deleted == 1
    assert worker.last_report == report


def test_integrity_error_skips_until_next_day(session_factory, mocker) -> None:
    mocker.patch(
        "scroll_summit.services.persistence.compact",
        side_effect=DataIntegrityError("conflict"),
    )
    worker = CompactionWorker(session_factory=session_factory)

    assert worker.maybe_run(NOW) is None
    assert worker.last_run_day == NOW.date()
    assert not worker.is_due(NOW)


def test_transient_failure_retries_at_next_check(session_factory, mocker) -> None:
    mocker.patch(
        "scroll_summit.services.persistence.compact",
        side_effect=SQLAlchemyError("database unavailable"),
    )
    worker = CompactionWorker(session_factory=session_factory)

    with pytest.raises(SQLAlchemyError):
        worker.maybe_run(NOW)
    assert worker.last_run_day is None
    assert worker.is_due(NOW)


def test_flushed_sample_reads_back_through_history(store, session_factory) -> None:
    flushed_at = datetime(2025, 1, 3, 4, 0, 30, 125000, tzinfo=UTC)
    store.increment("TH", 26)

    flush_raw(store, session_factory, now=flushed_at)

    with session_factory() as db:
        series = get_series(db, "1h", "TH", now=flushed_at)
    assert series.data_points == 1
    assert series.data[0].height == "26"
    assert series.data[0].time == flushed_at


def test_compaction_worker_from_settings_uses_retention_hours(session_factory) -> None:
    worker = CompactionWorker.from_settings(
        Settings(raw_retention_hours=6, compaction_hour_utc=5), session_factory
    )
    assert worker.retention == timedelta(hours=6)
    assert worker.run_hour_utc == 5
