"""Notification Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    """Schema for one notification, with its rendered message."""

    id: str
    user_id: str
    type: str
    message: str
    community_id: str | None = None
    community_name: str | None = None
    actor_id: str | None = None
    actor_name: str | None = None
    role: str | None = None
    post_id: str | None = None
    post_title: str | None = None
    link: str | None = None
    read: bool
    read_at: datetime | None = None
    created_at: datetime | None = None


class UnreadCountResponse(BaseModel):
    unread: int


class MarkAllReadResponse(BaseModel):
    updated: int
