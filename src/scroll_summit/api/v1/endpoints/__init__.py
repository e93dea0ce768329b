# src/scroll_summit/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .contributions import router as contributions_router
from .history import router as history_router
from .system import router as system_router

__all__ = [
    "contributions_router",
    "history_router",
    "system_router",
]
