"""Hot-to-cold persistence of regional heights.

Two independent schedules share this module:

- the raw flush appends one `RawSample` per known region every few seconds;
- compaction folds raw samples older than the retention window into one
  `DailySummary` per region and UTC day, then deletes those raw rows in the
  same transaction.

The hot path never depends on the database: a failed flush only loses the
samples of that tick.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from scroll_summit.core.errors import DataIntegrityError
from scroll_summit.core.settings import Settings
from scroll_summit.db.session import SessionLocal
from scroll_summit.db.time import ensure_utc, utcnow
from scroll_summit.models import DailySummary, RawSample
from scroll_summit.services.periodic import PeriodicWorker
from scroll_summit.services.state_store import StateStore

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]

# Keeps DELETE ... WHERE id IN (...) below SQLite's bound-parameter limit.
DELETE_CHUNK_SIZE = 500


def rounded_mean(total: int, count: int) -> int:
    """Integer mean rounded half up, exact for arbitrarily large heights."""
    return (2 * total + count) // (2 * count)


@dataclass(frozen=True)
class DailyAggregate:
    """Average/min/max/count of a bucket of raw heights."""

    average_height: int
    min_height: int
    max_height: int
    sample_count: int

    @classmethod
    def from_heights(cls, heights: Sequence[int]) -> DailyAggregate:
        if not heights:
            raise ValueError("cannot aggregate an empty bucket")
        return cls(
            average_height=rounded_mean(sum(heights), len(heights)),
            min_height=min(heights),
            max_height=max(heights),
            sample_count=len(heights),
        )

    def merge(self, other: DailyAggregate) -> DailyAggregate:
        """Combine two aggregates, weighting the averages by sample count."""
        count = self.sample_count + other.sample_count
        weighted = (
            self.average_height * self.sample_count + other.average_height * other.sample_count
        )
        return DailyAggregate(
            average_height=rounded_mean(weighted, count),
            min_height=min(self.min_height, other.min_height),
            max_height=max(self.max_height, other.max_height),
            sample_count=count,
        )


@dataclass(frozen=True)
class CompactionReport:
    """What a single compaction run did."""

    summaries_created: int = 0
    summaries_merged: int = 0
    raw_rows_deleted: int = 0


def flush_raw(
    store: StateStore,
    session_factory: SessionFactory = SessionLocal,
    now: datetime | None = None,
) -> int:
    """Append one raw sample per region present in the store.

    Zero-height regions are written too so the time series stays continuous.

    Returns:
        The number of rows written (0 when no region exists yet).
    """
    heights = store.all_heights()
    if not heights:
        logger.debug("Raw flush skipped: no regions tracked yet")
        return 0

    recorded_at = now or utcnow()
    with session_factory() as db:
        try:
            db.add_all(
                RawSample(region_code=region, height=height, recorded_at=recorded_at)
                for region, height in heights.items()
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

    logger.info("Flushed %d regional heights to raw history", len(heights))
    return len(heights)


def compact(
    session_factory: SessionFactory = SessionLocal,
    *,
    cutoff: datetime,
) -> CompactionReport:
    """Fold raw samples recorded before `cutoff` into daily summaries.

    Summary writes and the raw delete commit together. Raw rows that belong to
    a day that is already summarised are merged into the existing row, so a
    re-run never creates duplicates and never counts a sample twice.

    Raises:
        DataIntegrityError: The summaries could not be reconciled; nothing was
            written or deleted.
    """
    with session_factory() as db:
        try:
            rows = db.execute(
                select(RawSample)
                .where(RawSample.recorded_at < cutoff)
                .order_by(RawSample.recorded_at, RawSample.id)
            ).scalars().all()

            if not rows:
                logger.info("No raw records to compact before %s", cutoff.isoformat())
                return CompactionReport()

            report = _write_summaries(db, rows)

            ids = [row.id for row in rows]
            for start in range(0, len(ids), DELETE_CHUNK_SIZE):
                db.execute(
                    delete(RawSample).where(RawSample.id.in_(ids[start : start + DELETE_CHUNK_SIZE]))
                )
            db.commit()
        except DataIntegrityError:
            db.rollback()
            raise
        except IntegrityError as exc:
            db.rollback()
            raise DataIntegrityError(f"daily summary conflict: {exc.orig}") from exc
        except SQLAlchemyError:
            db.rollback()
            raise

    report = CompactionReport(
        summaries_created=report.summaries_created,
        summaries_merged=report.summaries_merged,
        raw_rows_deleted=len(ids),
    )
    logger.info(
        "Compacted %d raw rows into %d new and %d merged daily summaries",
        report.raw_rows_deleted,
        report.summaries_created,
        report.summaries_merged,
    )
    return report


def _write_summaries(db: Session, rows: Sequence[RawSample]) -> CompactionReport:
    buckets: dict[tuple[str, date], list[RawSample]] = defaultdict(list)
    for row in rows:
        buckets[(row.region_code, ensure_utc(row.recorded_at).date())].append(row)

    created = merged = 0
    for (region, day), bucket in buckets.items():
        aggregate = DailyAggregate.from_heights([row.height for row in bucket])
        existing = db.execute(
            select(DailySummary).where(
                DailySummary.region_code == region,
                DailySummary.day == day,
            )
        ).scalars().all()

        if len(existing) > 1:
            raise DataIntegrityError(
                f"{len(existing)} daily summaries found for {region} on {day.isoformat()}"
            )

        if existing:
            summary = existing[0]
            combined = DailyAggregate(
                average_height=summary.average_height,
                min_height=summary.min_height,
                max_height=summary.max_height,
                sample_count=summary.sample_count,
            ).merge(aggregate)
            summary.average_height = combined.average_height
            summary.min_height = combined.min_height
            summary.max_height = combined.max_height
            summary.sample_count = combined.sample_count
            merged += 1
            logger.warning(
                "Merged %d late raw samples into existing summary for %s on %s",
                aggregate.sample_count,
                region,
                day.isoformat(),
            )
        else:
            db.add(
                DailySummary(
                    region_code=region,
                    day=day,
                    average_height=aggregate.average_height,
                    min_height=aggregate.min_height,
                    max_height=aggregate.max_height,
                    sample_count=aggregate.sample_count,
                    recorded_at=bucket[0].recorded_at,
                )
            )
            created += 1

    db.flush()
    return CompactionReport(summaries_created=created, summaries_merged=merged)


class RawFlushWorker(PeriodicWorker):
    """Periodically snapshots the store into the raw history table."""

    name = "raw-flush"

    def __init__(
        self,
        store: StateStore,
        *,
        interval_seconds: float = 30.0,
        session_factory: SessionFactory = SessionLocal,
    ) -> None:
        super().__init__(interval_seconds)
        self.store = store
        self._session_factory = session_factory

    @classmethod
    def from_settings(
        cls, store: StateStore, config: Settings, session_factory: SessionFactory = SessionLocal
    ) -> RawFlushWorker:
        return cls(
            store,
            interval_seconds=config.persistence_interval_seconds,
            session_factory=session_factory,
        )

    def flush(self, now: datetime | None = None) -> int:
        return flush_raw(self.store, self._session_factory, now)

    async def run_once(self) -> None:
        await asyncio.to_thread(self.flush)


class CompactionWorker(PeriodicWorker):
    """Runs compaction once per UTC day at the configured hour.

    The schedule is polled every `interval_seconds`. A run that fails on a
    transient database error is retried at the next poll; a run that hits a
    `DataIntegrityError` is skipped until the next day and reported.
    """

    name = "compaction"

    def __init__(
        self,
        *,
        retention: timedelta = timedelta(hours=24),
        run_hour_utc: int = 3,
        interval_seconds: float = 60.0,
        session_factory: SessionFactory = SessionLocal,
    ) -> None:
        super().__init__(interval_seconds)
        if not 0 <= run_hour_utc <= 23:
            raise ValueError("run_hour_utc must be within [0, 23]")
        self.retention = retention
        self.run_hour_utc = run_hour_utc
        self._session_factory = session_factory
        self.last_run_day: date | None = None
        self.last_report: CompactionReport | None = None

    @classmethod
    def from_settings(
        cls, config: Settings, session_factory: SessionFactory = SessionLocal
    ) -> CompactionWorker:
        return cls(
            retention=timedelta(seconds=config.raw_retention_seconds),
            run_hour_utc=config.compaction_hour_utc,
            interval_seconds=config.compaction_check_interval_seconds,
            session_factory=session_factory,
        )

    def is_due(self, now: datetime) -> bool:
        return now.hour >= self.run_hour_utc and self.last_run_day != now.date()

    def run_compaction_now(self, now: datetime | None = None) -> CompactionReport:
        """Compact every raw row older than the retention window."""
        current = now or utcnow()
        report = compact(self._session_factory, cutoff=current - self.retention)
        self.last_report = report
        return report

    def maybe_run(self, now: datetime | None = None) -> CompactionReport | None:
        current = now or utcnow()
        if not self.is_due(current):
            return None
        try:
            report = self.run_compaction_now(current)
        except DataIntegrityError as e:
            self.last_run_day = current.date()
            logger.error("Compaction aborted, raw history left untouched: %s", e)
            return None
        self.last_run_day = current.date()
        return report

    async def run_once(self) -> None:
        await asyncio.to_thread(self.maybe_run)
