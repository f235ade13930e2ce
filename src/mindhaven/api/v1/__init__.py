# src/mindhaven/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    communities_router,
    notifications_router,
    support_router,
    system_router,
)

__all__ = [
    "communities_router",
    "notifications_router",
    "support_router",
    "system_router",
]
