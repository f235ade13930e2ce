# src/mindhaven/api/v1/endpoints/system.py
"""System and configuration endpoints for the MindHaven API."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from mindhaven.core.settings import settings

from ..dependencies import SessionDep, SupportChatDep

# Configure logger for this module
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/config")
async def get_public_config(support_chat: SupportChatDep) -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets, API keys and connection strings.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
        },
        "community": {
            **settings.community_policy,
            "chat_history_limit": settings.chat_history_limit,
            "post_page_size": settings.post_page_size,
        },
        "notifications": {
            "enabled": settings.notifications_enabled,
            "page_size": settings.notification_page_size,
        },
        "support_chat": {
            "enabled": support_chat.enabled,
            "model": settings.support_chat_model,
        },
    }


@router.get("/health")
async def get_system_health(db: SessionDep, support_chat: SupportChatDep) -> dict[str, object]:
    """Health check covering the database and the chatbot configuration."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as e:
        logger.error("Database health check failed: %s", e)
        db_status = f"unhealthy: {str(e)}"

    return {
        "status": "healthy" if db_status == "healthy" else "unhealthy",
        "timestamp": int(time.time()),
        "components": {
            "database": db_status,
            "support_chat": "enabled" if support_chat.enabled else "disabled",
        },
        "version": settings.app_version,
    }
