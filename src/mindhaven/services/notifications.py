"""Notification hook fired by membership changes, plus the read side."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from mindhaven.db.time import utcnow
from mindhaven.models.community import ROLE_ADMIN
from mindhaven.models.notification import (
    NOTIFICATION_MEMBER_REMOVED,
    NOTIFICATION_NEW_MEMBER,
    NOTIFICATION_NEW_POST,
    NOTIFICATION_ROLE_CHANGE,
)
from mindhaven.services.outcome import Outcome, OutcomeReason
from mindhaven.store.base import Document, DocumentStore, QueryOptions
from mindhaven.store.collections import COMMUNITIES, COMMUNITY_MEMBERS, NOTIFICATIONS, USERS

# Configure logger for this module
logger = logging.getLogger(__name__)

POST_TITLE_LENGTH = 50


class NotificationHook(Protocol):
    """Side-effect interface the membership core calls after state changes."""

    async def member_joined(self, community_id: str, user_id: str) -> None: ...

    async def member_removed(
        self, community_id: str, user_id: str, acting_user_id: str
    ) -> None: ...

    async def role_changed(
        self, community_id: str, user_id: str, role: str, acting_user_id: str
    ) -> None: ...

    async def post_created(
        self, community_id: str, post_id: str, author_id: str, content: str
    ) -> None: ...


class NullNotificationHook:
    """Hook that drops every event."""

    async def member_joined(self, community_id: str, user_id: str) -> None:
        return None

    async def member_removed(self, community_id: str, user_id: str, acting_user_id: str) -> None:
        return None

    async def role_changed(
        self, community_id: str, user_id: str, role: str, acting_user_id: str
    ) -> None:
        return None

    async def post_created(
        self, community_id: str, post_id: str, author_id: str, content: str
    ) -> None:
        return None


def _post_title(content: str) -> str:
    if len(content) <= POST_TITLE_LENGTH:
        return content
    return content[:POST_TITLE_LENGTH] + "..."


class StoreNotificationHook:
    """Writes one notification document per recipient into the store."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def _community_name(self, community_id: str) -> str:
        community = await self.store.get(COMMUNITIES, community_id)
        return community["name"] if community else "Community"

    async def _display_name(self, user_id: str, fallback: str) -> str:
        profile = await self.store.get(USERS, user_id)
        if profile and profile.get("display_name"):
            return str(profile["display_name"])
        return fallback

    async def _send(self, recipient_id: str, fields: Mapping[str, Any]) -> None:
        await self.store.insert(
            NOTIFICATIONS,
            {"user_id": recipient_id, "read": False, "created_at": utcnow(), **fields},
        )

    async def member_joined(self, community_id: str, user_id: str) -> None:
        admins = await self.store.query(
            COMMUNITY_MEMBERS, {"community_id": community_id, "role": ROLE_ADMIN}
        )
        recipients = {admin["user_id"] for admin in admins} - {user_id}
        if not recipients:
            return
        community_name = await self._community_name(community_id)
        actor_name = await self._display_name(user_id, "New Member")
        for admin_id in sorted(recipients):
            await self._send(
                admin_id,
                {
                    "type": NOTIFICATION_NEW_MEMBER,
                    "community_id": community_id,
                    "community_name": community_name,
                    "actor_id": user_id,
                    "actor_name": actor_name,
                    "link": f"/dashboard/community/{community_id}/members",
                },
            )

    async def member_removed(self, community_id: str, user_id: str, acting_user_id: str) -> None:
        if user_id == acting_user_id:
            return
        await self._send(
            user_id,
            {
                "type": NOTIFICATION_MEMBER_REMOVED,
                "community_id": community_id,
                "community_name": await self._community_name(community_id),
                "actor_id": acting_user_id,
                "link": "/dashboard/community",
            },
        )

    async def role_changed(
        self, community_id: str, user_id: str, role: str, acting_user_id: str
    ) -> None:
        community = await self.store.get(COMMUNITIES, community_id)
        if community is None:
            return
        await self._send(
            user_id,
            {
                "type": NOTIFICATION_ROLE_CHANGE,
                "community_id": community_id,
                "community_name": community["name"],
                "actor_id": acting_user_id,
                "role": role,
                "link": f"/dashboard/community/{community_id}",
            },
        )

    async def post_created(
        self, community_id: str, post_id: str, author_id: str, content: str
    ) -> None:
        members = await self.store.query(COMMUNITY_MEMBERS, {"community_id": community_id})
        recipients = {member["user_id"] for member in members} - {author_id}
        if not recipients:
            return
        community_name = await self._community_name(community_id)
        actor_name = await self._display_name(author_id, "Anonymous")
        for member_id in sorted(recipients):
            await self._send(
                member_id,
                {
                    "type": NOTIFICATION_NEW_POST,
                    "community_id": community_id,
                    "community_name": community_name,
                    "post_id": post_id,
                    "actor_id": author_id,
                    "actor_name": actor_name,
                    "post_title": _post_title(content),
                    "link": f"/dashboard/community/{community_id}/post/{post_id}",
                },
            )


def notification_message(notification: Mapping[str, Any] | None) -> str:
    """Render the one-line text shown for a notification."""
    if not notification:
        return ""
    kind = notification.get("type")
    actor = notification.get("actor_name") or "Someone"
    community = notification.get("community_name") or "a community"
    if kind == NOTIFICATION_NEW_POST:
        return f"{actor} posted in {community}"
    if kind == NOTIFICATION_NEW_MEMBER:
        return f"{actor} joined {community}"
    if kind == NOTIFICATION_ROLE_CHANGE:
        return f"Your role was changed to {notification.get('role')} in {community}"
    if kind == NOTIFICATION_MEMBER_REMOVED:
        return f"You were removed from {community}"
    return str(notification.get("message") or "New notification")


class NotificationService:
    """Read and acknowledge notifications for one user at a time."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def list_for_user(self, user_id: str, limit: int | None = None) -> list[Document]:
        return await self.store.query(
            NOTIFICATIONS,
            {"user_id": user_id},
            QueryOptions(order_by="created_at", descending=True, limit=limit),
        )

    async def unread_count(self, user_id: str) -> int:
        return await self.store.count(NOTIFICATIONS, {"user_id": user_id, "read": False})

    async def mark_read(self, notification_id: str, user_id: str | None) -> Outcome:
        """Mark one notification read. Only its recipient may do so."""
        if not user_id:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED)
        notification = await self.store.get(NOTIFICATIONS, notification_id)
        if notification is None or notification["user_id"] != user_id:
            return Outcome.failure(OutcomeReason.NOT_FOUND, "Notification not found")
        await self.store.update(
            NOTIFICATIONS, notification_id, {"read": True, "read_at": utcnow()}
        )
        return Outcome.success()

    async def mark_all_read(self, user_id: str | None) -> Outcome:
        """Mark every unread notification read; the outcome value is the count."""
        if not user_id:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED)
        unread = await self.store.query(NOTIFICATIONS, {"user_id": user_id, "read": False})
        now = utcnow()
        for notification in unread:
            await self.store.update(NOTIFICATIONS, notification["id"], {"read": True, "read_at": now})
        return Outcome.success(len(unread))
