"""Wiring of the aggregation core.

`WorkerRuntime` constructs the regional store once and hands the same
instance to every component that needs it. The web application keeps one
runtime on `app.state`; tests build isolated runtimes of their own.
"""

from __future__ import annotations

import logging

from scroll_summit.core.settings import Settings
from scroll_summit.db.session import SessionLocal
from scroll_summit.services.broadcast import SnapshotBroadcaster
from scroll_summit.services.contributions import ContributionService
from scroll_summit.services.decay import DecayWorker
from scroll_summit.services.periodic import PeriodicWorker
from scroll_summit.services.persistence import CompactionWorker, RawFlushWorker, SessionFactory
from scroll_summit.services.rollup import RollupWorker
from scroll_summit.services.state_store import StateStore, build_state_store
from scroll_summit.services.validator import ContributionValidator

logger = logging.getLogger(__name__)


class WorkerRuntime:
    """Owns the store, the ingestion service and every background loop."""

    def __init__(
        self,
        config: Settings,
        store: StateStore | None = None,
        session_factory: SessionFactory = SessionLocal,
    ) -> None:
        self.config = config
        self.session_factory = session_factory
        self.store = store if store is not None else build_state_store(config)
        self.validator = ContributionValidator.from_settings(config)
        self.rollup = RollupWorker.from_settings(self.store, config)
        self.decay = DecayWorker.from_settings(self.store, config)
        self.raw_flush = RawFlushWorker.from_settings(self.store, config, session_factory)
        self.compaction = CompactionWorker.from_settings(config, session_factory)
        self.contributions = ContributionService(self.store, self.validator, self.rollup)
        self.broadcaster = SnapshotBroadcaster(
            self.contributions.get_snapshot,
            interval_seconds=config.broadcast_interval_ms / 1000,
        )

    @property
    def workers(self) -> tuple[PeriodicWorker, ...]:
        return (self.decay, self.rollup, self.raw_flush, self.compaction, self.broadcaster)

    async def start(self) -> None:
        for worker in self.workers:
            await worker.start()
        logger.info(
            "Aggregation workers started (decay %d mm/tick after %d ms idle)",
            self.decay.decay_per_tick,
            self.decay.idle_threshold_ms,
        )

    async def stop(self) -> None:
        for worker in reversed(self.workers):
            await worker.stop()
        close = getattr(self.store, "close", None)
        if callable(close):
            close()
        logger.info("Aggregation workers stopped")
