"""System and transparency endpoints for the Scroll Summit API."""

from __future__ import annotations

from fastapi import APIRouter

from scroll_summit.core.settings import settings
from scroll_summit.core.units import MAX_MM_PER_BATCH, MAX_PIXELS_PER_BATCH, MM_PER_PIXEL

from ..dependencies import RuntimeDep

router = APIRouter(prefix="/system", tags=["system", "transparency"])


@router.get("/config")
async def get_public_config(runtime: RuntimeDep) -> dict[str, object]:
    """Return a sanitized snapshot of the game-balance configuration.

    Excludes connection strings; suitable for transparency UIs.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
        },
        "units": {
            "mm_per_pixel": MM_PER_PIXEL,
            "max_pixels_per_batch": MAX_PIXELS_PER_BATCH,
            "max_mm_per_batch": MAX_MM_PER_BATCH,
        },
        "anti_cheat": {
            "max_velocity_mm_per_second": runtime.validator.max_velocity,
            "min_batch_interval_ms": runtime.config.min_batch_interval_ms,
        },
        "gravity": {
            "decay_mm_per_tick": runtime.decay.decay_per_tick,
            "idle_threshold_ms": runtime.decay.idle_threshold_ms,
            "interval_ms": runtime.config.decay_interval_ms,
        },
        "rollup": {
            "interval_ms": runtime.config.rollup_interval_ms,
            "velocity_smoothing": runtime.rollup.smoothing,
            "broadcast_interval_ms": runtime.config.broadcast_interval_ms,
        },
        "retention": {
            "persistence_interval_seconds": runtime.config.persistence_interval_seconds,
            "raw_retention_hours": runtime.config.raw_retention_hours,
            "compaction_hour_utc": runtime.config.compaction_hour_utc,
        },
        "workers": {
            worker.name: {"running": worker.running, "ticks": worker.ticks}
            for worker in runtime.workers
        },
    }
