"""Global height rollup and climb velocity."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from scroll_summit.core.settings import Settings
from scroll_summit.core.units import format_height, format_velocity
from scroll_summit.services.periodic import PeriodicWorker
from scroll_summit.services.state_store import StateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlobalSnapshot:
    """Sum of all regional heights and its rate of change in mm/s."""

    total_height: int = 0
    velocity: float = 0.0


class RollupWorker(PeriodicWorker):
    """Recomputes the global total from the regional accumulators.

    Velocity is the change in total since the previous tick divided by the
    tick interval. With `smoothing` between 0 and 1 the exposed velocity is an
    exponential moving average of those instantaneous values instead.
    """

    name = "rollup"

    def __init__(
        self,
        store: StateStore,
        *,
        interval_seconds: float = 1.0,
        smoothing: float = 0.0,
    ) -> None:
        super().__init__(interval_seconds)
        if not 0.0 <= smoothing <= 1.0:
            raise ValueError("smoothing must be within [0, 1]")
        self.store = store
        self.smoothing = smoothing
        self._previous_total = 0
        self._latest = GlobalSnapshot()

    @classmethod
    def from_settings(cls, store: StateStore, config: Settings) -> RollupWorker:
        return cls(
            store,
            interval_seconds=config.rollup_interval_ms / 1000,
            smoothing=config.velocity_smoothing,
        )

    @property
    def latest(self) -> GlobalSnapshot:
        return self._latest

    def current_velocity(self) -> int:
        return round(self._latest.velocity)

    def tick(self) -> GlobalSnapshot:
        """Sum the regions, publish the total and derive the velocity."""
        total = sum(self.store.all_heights().values())
        delta = total - self._previous_total
        instant = delta / self.interval_seconds

        if self.smoothing > 0.0:
            velocity = self.smoothing * instant + (1.0 - self.smoothing) * self._latest.velocity
        else:
            velocity = instant

        self.store.publish_total(total)
        self._previous_total = total
        self._latest = GlobalSnapshot(total_height=total, velocity=velocity)

        logger.debug(
            "Global height updated: %s (delta %d mm, climbing at %s)",
            format_height(total),
            delta,
            format_velocity(velocity),
        )
        return self._latest

    async def run_once(self) -> None:
        self.tick()
