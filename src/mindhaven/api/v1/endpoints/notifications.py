# src/mindhaven/api/v1/endpoints/notifications.py
"""Notification inbox endpoints for the signed-in user."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Response, status

from mindhaven.core.errors import AuthenticationRequiredError
from mindhaven.core.settings import settings
from mindhaven.schemas.notification import (
    MarkAllReadResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from mindhaven.services.notifications import notification_message

from ..dependencies import IdentityDep, NotificationServiceDep, actor_id

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _signed_in_user(identity: IdentityDep) -> str:
    user_id = actor_id(identity)
    if not user_id:
        raise AuthenticationRequiredError("Sign in required")
    return user_id


@router.get("/", response_model=list[NotificationResponse])
async def list_notifications(
    service: NotificationServiceDep,
    identity: IdentityDep,
    limit: int | None = Query(None, ge=1, le=200),
) -> list[dict[str, Any]]:
    """List the caller's notifications, newest first."""
    user_id = _signed_in_user(identity)
    notifications = await service.list_for_user(
        user_id, limit or settings.notification_page_size
    )
    return [{**item, "message": notification_message(item)} for item in notifications]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    service: NotificationServiceDep,
    identity: IdentityDep,
) -> UnreadCountResponse:
    user_id = _signed_in_user(identity)
    return UnreadCountResponse(unread=await service.unread_count(user_id))


@router.post(
    "/{notification_id}/read",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def mark_notification_read(
    notification_id: str,
    service: NotificationServiceDep,
    identity: IdentityDep,
) -> Response:
    outcome = await service.mark_read(notification_id, actor_id(identity))
    outcome.raise_for_failure()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    service: NotificationServiceDep,
    identity: IdentityDep,
) -> MarkAllReadResponse:
    """Mark every unread notification of the caller as read."""
    outcome = await service.mark_all_read(actor_id(identity))
    outcome.raise_for_failure()
    return MarkAllReadResponse(updated=outcome.value)
