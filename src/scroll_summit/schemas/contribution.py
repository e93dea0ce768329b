# src/scroll_summit/schemas/contribution.py
"""Contribution-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, Field

from scroll_summit.core.units import MAX_PIXELS_PER_BATCH


class ContributionCreate(BaseModel):
    """Schema for submitting a scroll batch over HTTP."""

    contributor_id: str = Field(..., min_length=1, max_length=128)
    region: str = Field("XX", min_length=2, max_length=3, description="Region code, e.g. TH")
    delta_pixels: float = Field(
        ..., gt=0, le=MAX_PIXELS_PER_BATCH, description="Scroll distance in CSS pixels"
    )
    elapsed_ms: int = Field(
        ..., gt=0, description="Milliseconds since the contributor's previous accepted batch"
    )


class ContributionOut(BaseModel):
    """Outcome of a submitted batch."""

    status: Literal["accepted", "rejected", "retry"]
    reason: str | None = None


class ScrollBatch(BaseModel):
    """WebSocket message carrying one scroll batch."""

    type: Literal["scroll_batch"] = "scroll_batch"
    delta: float = Field(..., gt=0, le=MAX_PIXELS_PER_BATCH)


class SnapshotOut(BaseModel):
    """Real-time global state; heights are decimal strings."""

    total_height: str
    velocity: int
    regional_heights: dict[str, str]
