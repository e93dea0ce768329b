"""Ingestion of scroll batches and the real-time snapshot read model."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

from scroll_summit.core.errors import TransientStoreError
from scroll_summit.core.units import to_canonical_units
from scroll_summit.services.rollup import RollupWorker
from scroll_summit.services.state_store import StateStore, normalize_region
from scroll_summit.services.validator import ContributionValidator

logger = logging.getLogger(__name__)

ContributionStatus = Literal["accepted", "rejected", "retry"]


@dataclass(frozen=True)
class ContributionResult:
    """Outcome reported back to the transport layer."""

    status: ContributionStatus
    reason: str | None = None
    delta_mm: int = 0

    @property
    def accepted(self) -> bool:
        return self.status == "accepted"


class ContributorPacer:
    """Caller-side spacing between accepted batches of one contributor.

    Held by the connection that owns the contributor; the first batch is
    measured from the moment the pacer was created.
    """

    def __init__(self, started_at_ms: int, min_interval_ms: int = 500) -> None:
        self.min_interval_ms = min_interval_ms
        self._last_accepted_ms = started_at_ms

    def elapsed(self, now_ms: int) -> int | None:
        """Milliseconds since the last accepted batch, or None if too soon."""
        elapsed = now_ms - self._last_accepted_ms
        if elapsed < self.min_interval_ms or elapsed <= 0:
            return None
        return elapsed

    def mark_accepted(self, now_ms: int) -> None:
        self._last_accepted_ms = now_ms


class ContributionService:
    """Validates batches, feeds the regional store and serves snapshots."""

    def __init__(
        self,
        store: StateStore,
        validator: ContributionValidator,
        rollup: RollupWorker,
    ) -> None:
        self.store = store
        self.validator = validator
        self.rollup = rollup

    def submit_contribution(
        self,
        contributor_id: str,
        region: str,
        device_pixels_delta: float,
        elapsed_ms_since_last_batch: int,
    ) -> ContributionResult:
        """Convert, validate and apply one scroll batch.

        Rejections are not errors: the batch is dropped without touching the
        store and a warning is logged for abuse monitoring.

        Raises:
            ValueError: If `region` is not a valid region code or the delta is
                negative.
        """
        code = normalize_region(region)
        if device_pixels_delta < 0:
            raise ValueError("scroll delta must not be negative")
        delta_mm = to_canonical_units(device_pixels_delta)
        verdict = self.validator.validate(delta_mm, elapsed_ms_since_last_batch)

        if not verdict.accepted:
            reason = verdict.reason.value if verdict.reason is not None else None
            logger.warning(
                "Suspicious activity from %s: %s, velocity %.2f mm/s (%d mm in %d ms)",
                contributor_id,
                reason,
                verdict.velocity,
                delta_mm,
                elapsed_ms_since_last_batch,
            )
            return ContributionResult("rejected", reason, delta_mm)

        try:
            self.store.increment(code, delta_mm)
        except TransientStoreError as e:
            logger.error("Store unavailable for contribution from %s: %s", contributor_id, e)
            return ContributionResult("retry", "store-unavailable", delta_mm)

        return ContributionResult("accepted", None, delta_mm)

    def get_snapshot(self) -> dict[str, Any]:
        """Latest global total and per-region heights as decimal strings."""
        heights = self.store.all_heights()
        ordered = sorted(heights.items(), key=lambda item: (-item[1], item[0]))
        return {
            "total_height": str(self.store.published_total()),
            "velocity": self.rollup.current_velocity(),
            "regional_heights": {region: str(height) for region, height in ordered},
        }
