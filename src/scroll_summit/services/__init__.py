# src/scroll_summit/services/__init__.py
"""Aggregation core services for Scroll Summit."""

from .broadcast import SnapshotBroadcaster
from .contributions import ContributionResult, ContributionService, ContributorPacer
from .decay import DecayWorker
from .persistence import CompactionWorker, RawFlushWorker
from .rollup import GlobalSnapshot, RollupWorker
from .runtime import WorkerRuntime
from .state_store import RedisRegionalStateStore, RegionalStateStore
from .validator import ContributionValidator, RejectReason

__all__ = [
    "CompactionWorker",
    "ContributionResult",
    "ContributionService",
    "ContributionValidator",
    "ContributorPacer",
    "DecayWorker",
    "GlobalSnapshot",
    "RawFlushWorker",
    "RedisRegionalStateStore",
    "RegionalStateStore",
    "RejectReason",
    "RollupWorker",
    "SnapshotBroadcaster",
    "WorkerRuntime",
]
