"""Fixed-cadence background loop shared by the decay, rollup, persistence and
broadcast workers.

Each worker owns one `asyncio.Task`. Ticks are scheduled against the event
loop's monotonic clock, so a failing or slow tick never shifts the cadence of
later ones; ticks that are already overdue are skipped rather than replayed
in a burst.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError

from scroll_summit.core.errors import SummitError

logger = logging.getLogger(__name__)

# Errors a single tick may raise without taking the loop down.
TICK_ERRORS: tuple[type[BaseException], ...] = (
    SummitError,
    SQLAlchemyError,
    OSError,
    ValueError,
    TypeError,
    KeyError,
    ArithmeticError,
)


class PeriodicWorker:
    """Runs `run_once` every `interval_seconds` until stopped."""

    name = "periodic"

    def __init__(self, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds = float(interval_seconds)
        self.ticks = 0
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run(), name=f"{self.name}-worker")
            logger.info("%s worker started (%.3fs interval)", self.name, self.interval_seconds)

    async def stop(self) -> None:
        """Stop scheduling ticks and wait for an in-progress tick to finish."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None
        logger.info("%s worker stopped after %d ticks", self.name, self.ticks)

    async def run_once(self) -> None:
        raise NotImplementedError

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.interval_seconds

        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(
                    self._stopping.wait(),
                    timeout=max(0.0, next_tick - loop.time()),
                )
                break
            except TimeoutError:
                pass

            try:
                await self.run_once()
            except TICK_ERRORS as e:
                logger.error("%s tick %d failed: %s", self.name, self.ticks, e, exc_info=True)
            self.ticks += 1

            next_tick += self.interval_seconds
            now = loop.time()
            if next_tick < now:
                skipped = int((now - next_tick) // self.interval_seconds) + 1
                next_tick += skipped * self.interval_seconds
                logger.warning("%s worker fell behind, skipped %d ticks", self.name, skipped)
