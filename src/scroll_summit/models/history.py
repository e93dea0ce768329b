# src/scroll_summit/models/history.py
"""Tiered height history: short-lived raw samples and permanent daily rows."""

from datetime import date, datetime

from sqlalchemy import BigInteger, Date, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from scroll_summit.db.session import Base
from scroll_summit.db.time import utcnow


class RawSample(Base):
    """Snapshot of one region's height at a flush instant.

    Rows older than the raw retention window are folded into `DailySummary`
    and deleted by compaction.
    """

    __tablename__ = "region_history_raw"
    __table_args__ = (
        Index("ix_region_history_raw_region_recorded", "region_code", "recorded_at"),
        Index("ix_region_history_raw_recorded", "recorded_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    region_code: Mapped[str] = mapped_column(String(3), nullable=False)
    height: Mapped[int] = mapped_column(BigInteger, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class DailySummary(Base):
    """Compacted aggregate of one region's raw samples for one UTC day.

    Retained indefinitely. `average_height` is weighted by `sample_count`
    whenever two partial summaries of the same day are merged.
    """

    __tablename__ = "region_history_daily"
    __table_args__ = (
        UniqueConstraint("region_code", "day", name="uq_region_history_daily_region_day"),
        Index("ix_region_history_daily_day", "day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    region_code: Mapped[str] = mapped_column(String(3), nullable=False)
    day: Mapped[date] = mapped_column(Date, nullable=False)
    average_height: Mapped[int] = mapped_column(BigInteger, nullable=False)
    min_height: Mapped[int] = mapped_column(BigInteger, nullable=False)
    max_height: Mapped[int] = mapped_column(BigInteger, nullable=False)
    sample_count: Mapped[int] = mapped_column(Integer, nullable=False)
    # Timestamp of the earliest raw sample folded into this row.
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
