"""Gravity: idle regions lose height on every decay tick.

A region is idle once no contribution has touched it for longer than the
idle threshold. Decay never moves the idle clock; only contributions do.
"""

from __future__ import annotations

import logging

from scroll_summit.core.settings import Settings
from scroll_summit.db.time import now_ms
from scroll_summit.services.periodic import TICK_ERRORS, PeriodicWorker
from scroll_summit.services.state_store import StateStore

logger = logging.getLogger(__name__)


class DecayWorker(PeriodicWorker):
    """Applies `decay_per_tick` millimetres to every idle, non-empty region."""

    name = "decay"

    def __init__(
        self,
        store: StateStore,
        *,
        decay_per_tick: int,
        idle_threshold_ms: int,
        interval_seconds: float = 1.0,
    ) -> None:
        super().__init__(interval_seconds)
        if decay_per_tick < 0 or idle_threshold_ms < 0:
            raise ValueError("decay_per_tick and idle_threshold_ms must be non-negative")
        self.store = store
        self.decay_per_tick = int(decay_per_tick)
        self.idle_threshold_ms = int(idle_threshold_ms)

    @classmethod
    def from_settings(cls, store: StateStore, config: Settings) -> DecayWorker:
        return cls(
            store,
            decay_per_tick=config.decay_per_tick,
            idle_threshold_ms=config.idle_threshold_ms,
            interval_seconds=config.decay_interval_ms / 1000,
        )

    def tick(self, now: int | None = None) -> dict[str, int]:
        """Run one decay pass and return the new height of each decayed region."""
        current = now_ms() if now is None else now
        heights = self.store.all_heights()
        activity = self.store.all_last_activity()
        decayed: dict[str, int] = {}

        if self.decay_per_tick == 0:
            return decayed

        for region, height in heights.items():
            if height <= 0:
                continue
            last_seen = activity.get(region)
            if last_seen is None or current - last_seen <= self.idle_threshold_ms:
                continue
            try:
                decayed[region] = self.store.decrement(region, self.decay_per_tick)
            except TICK_ERRORS as e:
                logger.warning("Decay failed for region %s: %s", region, e)
                continue
            logger.debug("Gravity applied to %s: %d -> %d", region, height, decayed[region])

        return decayed

    async def run_once(self) -> None:
        self.tick()
