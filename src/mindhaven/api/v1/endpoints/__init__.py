# src/mindhaven/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .communities import router as communities_router
from .notifications import router as notifications_router
from .support import router as support_router
from .system import router as system_router

__all__ = [
    "communities_router",
    "notifications_router",
    "support_router",
    "system_router",
]
