# src/scroll_summit/models/contributor.py
"""Models for the opaque contributors feeding scroll height."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from scroll_summit.db.session import Base
from scroll_summit.db.time import utcnow


def _new_contributor_id() -> str:
    return uuid.uuid4().hex


class Contributor(Base):
    """A device or session that submits scroll batches.

    The contributor key is opaque to the core; the region code is assigned by
    the transport layer on first contact and kept for later sessions.
    """

    __tablename__ = "contributor"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_contributor_id)
    contributor_key: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    region_code: Mapped[str] = mapped_column(String(3), nullable=False, default="XX")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
