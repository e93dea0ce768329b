"""Fan-out of the latest snapshot to connected clients."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from scroll_summit.services.periodic import PeriodicWorker

logger = logging.getLogger(__name__)

Subscriber = Callable[[dict[str, Any]], Awaitable[None]]
SnapshotSource = Callable[[], dict[str, Any]]


class SnapshotBroadcaster(PeriodicWorker):
    """Pushes `{"type": "tick", ...snapshot}` to every subscriber.

    The cadence is independent of the rollup: a tick may republish an
    unchanged snapshot. A subscriber whose send fails, or does not complete
    within one broadcast interval, is dropped.
    """

    name = "broadcast"

    def __init__(self, source: SnapshotSource, *, interval_seconds: float = 0.2) -> None:
        super().__init__(interval_seconds)
        self._source = source
        self._subscribers: set[Subscriber] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.add(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.discard(subscriber)

    async def publish(self) -> int:
        """Send one tick to all subscribers; return how many received it."""
        if not self._subscribers:
            return 0

        message = {"type": "tick", **self._source()}
        subscribers = list(self._subscribers)
        results = await asyncio.gather(
            *(
                asyncio.wait_for(subscriber(message), timeout=self.interval_seconds)
                for subscriber in subscribers
            ),
            return_exceptions=True,
        )

        delivered = 0
        for subscriber, result in zip(subscribers, results, strict=True):
            if isinstance(result, BaseException):
                logger.info("Dropping snapshot subscriber after send failure: %r", result)
                self._subscribers.discard(subscriber)
            else:
                delivered += 1
        return delivered

    async def run_once(self) -> None:
        await self.publish()
