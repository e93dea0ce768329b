"""Authoritative per-region height accumulators.

The store is the only shared mutable resource of the aggregation core: the
ingestion path increments it while the decay, rollup and persistence loops
read and decrement it on their own timers. Atomicity is per region; nothing
reads or writes two regions as a unit.

Two interchangeable backends are provided:

- `RegionalStateStore` keeps everything in process memory, guarded by one
  lock per region.
- `RedisRegionalStateStore` keeps the accumulators in Redis so several web
  processes can share them.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import redis

from scroll_summit.core.errors import TransientStoreError
from scroll_summit.core.settings import Settings
from scroll_summit.db.time import now_ms

logger = logging.getLogger(__name__)

REGION_CODE_PATTERN = re.compile(r"^[A-Z]{2,3}$")
UNKNOWN_REGION = "XX"

Clock = Callable[[], int]


def normalize_region(region: str) -> str:
    """Return the canonical (upper-case) region code or raise ValueError."""
    code = (region or "").strip().upper()
    if not REGION_CODE_PATTERN.match(code):
        raise ValueError(f"Invalid region code: {region!r}")
    return code


class StateStore(Protocol):
    """Operations every regional state backend provides."""

    def increment(self, region: str, amount: int) -> int: ...

    def decrement(self, region: str, amount: int) -> int: ...

    def all_heights(self) -> dict[str, int]: ...

    def last_activity(self, region: str) -> int | None: ...

    def all_last_activity(self) -> dict[str, int]: ...

    def publish_total(self, total: int) -> None: ...

    def published_total(self) -> int: ...


@dataclass
class RegionAccumulator:
    """Height and liveness of a single region."""

    region_code: str
    height: int = 0
    last_activity: int | None = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


class RegionalStateStore:
    """In-memory store with one lock per region.

    The registry lock is only held while a region entry is looked up or
    created, so writers to different regions never wait on each other.
    """

    def __init__(self, clock: Clock = now_ms) -> None:
        self._clock = clock
        self._regions: dict[str, RegionAccumulator] = {}
        self._registry_lock = threading.Lock()
        self._total = 0

    def _entry(self, region: str) -> RegionAccumulator | None:
        with self._registry_lock:
            return self._regions.get(region)

    def _entry_or_create(self, region: str) -> RegionAccumulator:
        with self._registry_lock:
            entry = self._regions.get(region)
            if entry is None:
                entry = RegionAccumulator(region_code=region)
                self._regions[region] = entry
                logger.info("Tracking new region %s", region)
            return entry

    def _entries(self) -> list[RegionAccumulator]:
        with self._registry_lock:
            return list(self._regions.values())

    def increment(self, region: str, amount: int) -> int:
        """Add `amount` to the region and mark it active; return the new height."""
        if amount < 0:
            raise ValueError("increment amount must be non-negative")
        code = normalize_region(region)
        entry = self._entry_or_create(code)
        with entry.lock:
            entry.height += int(amount)
            entry.last_activity = self._clock()
            return entry.height

    def decrement(self, region: str, amount: int) -> int:
        """Subtract up to `amount` without going below zero; return the new height."""
        if amount < 0:
            raise ValueError("decrement amount must be non-negative")
        entry = self._entry(normalize_region(region))
        if entry is None:
            return 0
        with entry.lock:
            entry.height -= min(int(amount), entry.height)
            return entry.height

    def height(self, region: str) -> int:
        entry = self._entry(normalize_region(region))
        if entry is None:
            return 0
        with entry.lock:
            return entry.height

    def all_heights(self) -> dict[str, int]:
        """Per-region heights; each value is read atomically on its own."""
        heights: dict[str, int] = {}
        for entry in self._entries():
            with entry.lock:
                heights[entry.region_code] = entry.height
        return heights

    def last_activity(self, region: str) -> int | None:
        entry = self._entry(normalize_region(region))
        if entry is None:
            return None
        with entry.lock:
            return entry.last_activity

    def all_last_activity(self) -> dict[str, int]:
        activity: dict[str, int] = {}
        for entry in self._entries():
            with entry.lock:
                if entry.last_activity is not None:
                    activity[entry.region_code] = entry.last_activity
        return activity

    def publish_total(self, total: int) -> None:
        with self._registry_lock:
            self._total = int(total)

    def published_total(self) -> int:
        with self._registry_lock:
            return self._total


class RedisRegionalStateStore:
    """Redis-backed store sharing accumulators across processes.

    Increments use INCRBY. The clamped decrement runs as an optimistic
    WATCH/MULTI transaction so a concurrent increment forces a retry instead
    of being lost. Every Redis failure surfaces as `TransientStoreError`.
    """

    def __init__(self, client: Any, *, clock: Clock = now_ms, prefix: str = "summit") -> None:
        self._redis = client
        self._clock = clock
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, *, clock: Clock = now_ms) -> RedisRegionalStateStore:
        return cls(redis.from_url(url, decode_responses=True), clock=clock)

    # --- Key helpers ---------------------------------------------------------------
    def _height_key(self, region: str) -> str:
        return f"{self._prefix}:height:{region}"

    def _activity_key(self, region: str) -> str:
        return f"{self._prefix}:activity:{region}"

    @property
    def _regions_key(self) -> str:
        return f"{self._prefix}:regions"

    @property
    def _total_key(self) -> str:
        return f"{self._prefix}:total"

    def _regions(self) -> list[str]:
        return sorted(str(member) for member in self._redis.smembers(self._regions_key))

    # --- Mutations -----------------------------------------------------------------
    def increment(self, region: str, amount: int) -> int:
        if amount < 0:
            raise ValueError("increment amount must be non-negative")
        code = normalize_region(region)
        try:
            pipe = self._redis.pipeline(transaction=True)
            pipe.incrby(self._height_key(code), int(amount))
            pipe.set(self._activity_key(code), self._clock())
            pipe.sadd(self._regions_key, code)
            height, *_ = pipe.execute()
        except redis.RedisError as exc:
            raise TransientStoreError(f"increment failed for {code}: {exc}") from exc
        return int(height)

    def decrement(self, region: str, amount: int) -> int:
        if amount < 0:
            raise ValueError("decrement amount must be non-negative")
        code = normalize_region(region)
        key = self._height_key(code)

        def _apply(pipe: Any) -> int:
            raw = pipe.get(key)
            current = int(raw) if raw is not None else 0
            step = min(int(amount), current)
            pipe.multi()
            if step > 0:
                pipe.decrby(key, step)
            return current - step

        try:
            return int(self._redis.transaction(_apply, key, value_from_callable=True))
        except redis.RedisError as exc:
            raise TransientStoreError(f"decrement failed for {code}: {exc}") from exc

    # --- Reads ---------------------------------------------------------------------
    def all_heights(self) -> dict[str, int]:
        try:
            regions = self._regions()
            if not regions:
                return {}
            values = self._redis.mget([self._height_key(code) for code in regions])
        except redis.RedisError as exc:
            raise TransientStoreError(f"reading heights failed: {exc}") from exc
        return {code: int(value or 0) for code, value in zip(regions, values, strict=True)}

    def last_activity(self, region: str) -> int | None:
        code = normalize_region(region)
        try:
            value = self._redis.get(self._activity_key(code))
        except redis.RedisError as exc:
            raise TransientStoreError(f"reading activity failed for {code}: {exc}") from exc
        return int(value) if value is not None else None

    def all_last_activity(self) -> dict[str, int]:
        try:
            regions = self._regions()
            if not regions:
                return {}
            values = self._redis.mget([self._activity_key(code) for code in regions])
        except redis.RedisError as exc:
            raise TransientStoreError(f"reading activity failed: {exc}") from exc
        return {
            code: int(value)
            for code, value in zip(regions, values, strict=True)
            if value is not None
        }

    def publish_total(self, total: int) -> None:
        try:
            self._redis.set(self._total_key, int(total))
        except redis.RedisError as exc:
            raise TransientStoreError(f"publishing total failed: {exc}") from exc

    def published_total(self) -> int:
        try:
            value = self._redis.get(self._total_key)
        except redis.RedisError as exc:
            raise TransientStoreError(f"reading total failed: {exc}") from exc
        return int(value or 0)

    def close(self) -> None:
        self._redis.close()


def build_state_store(config: Settings) -> StateStore:
    """Construct the backend selected by `STATE_BACKEND`."""
    if config.state_backend == "redis":
        logger.info("Using Redis regional state store at %s", config.redis_url)
        return RedisRegionalStateStore.from_url(config.redis_url)
    logger.info("Using in-memory regional state store")
    return RegionalStateStore()
