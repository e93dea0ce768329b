"""Anti-cheat gate for incoming scroll batches.

The validator judges one batch at a time and holds no state. Pacing between
batches of the same contributor is the caller's concern.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from scroll_summit.core.settings import Settings
from scroll_summit.core.units import BASE_MAX_VELOCITY_MM_PER_SECOND, MAX_MM_PER_BATCH

MILLISECONDS_PER_SECOND = 1000


class RejectReason(str, Enum):
    """Reason codes attached to declined batches."""

    TOO_LARGE = "too-large"
    TOO_FAST = "too-fast"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a single batch."""

    accepted: bool
    velocity: float
    reason: RejectReason | None = None


class ContributionValidator:
    """Per-batch size ceiling and velocity check, in millimetres."""

    def __init__(
        self,
        max_velocity_mm_per_second: float = BASE_MAX_VELOCITY_MM_PER_SECOND,
        max_mm_per_batch: int = MAX_MM_PER_BATCH,
    ) -> None:
        self.max_velocity = float(max_velocity_mm_per_second)
        self.max_mm_per_batch = int(max_mm_per_batch)

    @classmethod
    def from_settings(cls, config: Settings) -> ContributionValidator:
        return cls(
            max_velocity_mm_per_second=(
                BASE_MAX_VELOCITY_MM_PER_SECOND * config.max_velocity_multiplier
            ),
        )

    def validate(self, delta_canonical: int, elapsed_ms: int) -> ValidationResult:
        """Accept or reject a batch of `delta_canonical` mm over `elapsed_ms`.

        Args:
            delta_canonical: Scroll distance of the batch in millimetres.
            elapsed_ms: Milliseconds since the contributor's previous accepted batch.

        Returns:
            A `ValidationResult`; velocity exactly at the ceiling is accepted.
        """
        if elapsed_ms <= 0:
            return ValidationResult(False, float("inf"), RejectReason.TOO_FAST)

        velocity = delta_canonical / elapsed_ms * MILLISECONDS_PER_SECOND
        if delta_canonical > self.max_mm_per_batch:
            return ValidationResult(False, velocity, RejectReason.TOO_LARGE)

        # Compare without dividing so the boundary is exact.
        if delta_canonical * MILLISECONDS_PER_SECOND > self.max_velocity * elapsed_ms:
            return ValidationResult(False, velocity, RejectReason.TOO_FAST)

        return ValidationResult(True, velocity)
