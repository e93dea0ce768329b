# src/scroll_summit/main.py
"""Main entry point for the Scroll Summit application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from scroll_summit.api.v1 import contributions_router, history_router, system_router
from scroll_summit.core.settings import settings
from scroll_summit.db.session import create_tables
from scroll_summit.services.runtime import WorkerRuntime

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = settings.log_level) -> None:
    """Configure root logging once for the service process."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


# Initialize FastAPI app
app = FastAPI(
    title="Scroll Summit API",
    description="Collective scroll height, aggregated per region in real time",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(contributions_router, prefix="/api/v1")
app.include_router(history_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    create_tables()
    runtime = WorkerRuntime(settings)
    app.state.runtime = runtime
    if settings.workers_enabled:
        await runtime.start()
    else:
        logger.info("Background workers disabled; serving ingestion only")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    runtime: WorkerRuntime | None = getattr(app.state, "runtime", None)
    if runtime:
        await runtime.stop()
    app.state.runtime = None


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Scroll Summit API",
        "version": settings.app_version,
        "description": "Collective scroll height, aggregated per region in real time",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("scroll_summit.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
