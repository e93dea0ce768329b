# src/scroll_summit/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import contributions_router, history_router, system_router

__all__ = [
    "contributions_router",
    "history_router",
    "system_router",
]
