"""region history and contributors

Revision ID: 5b1e7c2a9d04
Revises:
Create Date: 2025-12-01 09:12:44.318204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5b1e7c2a9d04"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the contributor registry and the tiered height history tables."""
    op.create_table(
        "contributor",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("contributor_key", sa.Text(), nullable=False),
        sa.Column("region_code", sa.String(length=3), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("contributor_key"),
    )
    op.create_table(
        "region_history_raw",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("region_code", sa.String(length=3), nullable=False),
        sa.Column("height", sa.BigInteger(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_region_history_raw_region_recorded",
        "region_history_raw",
        ["region_code", "recorded_at"],
    )
    op.create_index("ix_region_history_raw_recorded", "region_history_raw", ["recorded_at"])
    op.create_table(
        "region_history_daily",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("region_code", sa.String(length=3), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("average_height", sa.BigInteger(), nullable=False),
        sa.Column("min_height", sa.BigInteger(), nullable=False),
        sa.Column("max_height", sa.BigInteger(), nullable=False),
        sa.Column("sample_count", sa.Integer(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("region_code", "day", name="uq_region_history_daily_region_day"),
    )
    op.create_index("ix_region_history_daily_day", "region_history_daily", ["day"])


def downgrade() -> None:
    """Drop the history tables and the contributor registry."""
    op.drop_index("ix_region_history_daily_day", table_name="region_history_daily")
    op.drop_table("region_history_daily")
    op.drop_index("ix_region_history_raw_recorded", table_name="region_history_raw")
    op.drop_index("ix_region_history_raw_region_recorded", table_name="region_history_raw")
    op.drop_table("region_history_raw")
    op.drop_table("contributor")
