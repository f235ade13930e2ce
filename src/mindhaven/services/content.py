"""Posts, post likes and comments, and group chat scoped to a community."""

from __future__ import annotations

import logging

from mindhaven.core.errors import StoreError, ValidationError
from mindhaven.core.settings import settings
from mindhaven.db.time import utcnow
from mindhaven.services.identity import Identity
from mindhaven.services.notifications import NotificationHook, NullNotificationHook
from mindhaven.services.outcome import Outcome, OutcomeReason
from mindhaven.services.permissions import (
    ACTION_CREATE_POST,
    ACTION_DELETE_ANY_POST,
    ACTION_VIEW_COMMUNITY,
    has_permission,
)
from mindhaven.store.base import Document, DocumentStore, Increment, QueryOptions
from mindhaven.store.collections import (
    CHAT_MESSAGES,
    COMMUNITIES,
    COMMUNITY_MEMBERS,
    POST_COMMENTS,
    POST_LIKES,
    POSTS,
)

# Configure logger for this module
logger = logging.getLogger(__name__)


def _require_content(content: str) -> str:
    text = content.strip()
    if not text:
        raise ValidationError({"content": "Content is required"})
    return text


class CommunityContentService:
    """Posts, likes, comments and chat messages for community members."""

    def __init__(self, store: DocumentStore, notifier: NotificationHook | None = None) -> None:
        self.store = store
        self.notifier = notifier or NullNotificationHook()

    async def _membership(self, community_id: str, user_id: str) -> Document | None:
        memberships = await self.store.query(
            COMMUNITY_MEMBERS,
            {"community_id": community_id, "user_id": user_id},
            QueryOptions(order_by="joined_at", limit=1),
        )
        return memberships[0] if memberships else None

    async def _check_member(
        self, community_id: str, author: Identity | None, action: str
    ) -> Outcome:
        """Check that ``author`` may act in the community.

        Returns:
            A success outcome whose value is the acting identity, or the
            failure outcome to hand back to the caller.
        """
        if author is None or not author.user_id:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED)
        if await self.store.get(COMMUNITIES, community_id) is None:
            return Outcome.failure(OutcomeReason.NOT_FOUND, "Community not found")
        membership = await self._membership(community_id, author.user_id)
        if not has_permission(membership, action):
            return Outcome.failure(OutcomeReason.UNAUTHORIZED, "Only members can do that")
        return Outcome.success(author)

    async def create_post(
        self, community_id: str, author: Identity | None, content: str
    ) -> Outcome:
        """Publish a post; the outcome value is the post id."""
        text = _require_content(content)
        checked = await self._check_member(community_id, author, ACTION_CREATE_POST)
        if not checked:
            return checked
        member: Identity = checked.value

        now = utcnow()
        post_id = await self.store.insert(
            POSTS,
            {
                "community_id": community_id,
                "author_id": member.user_id,
                "author_name": member.display_name or "Anonymous",
                "author_photo": member.photo_url,
                "content": text,
                "created_at": now,
                "updated_at": now,
            },
        )
        await self.store.update(
            COMMUNITIES,
            community_id,
            {"post_count": Increment(1), "last_activity_at": now},
        )
        if settings.notifications_enabled:
            try:
                await self.notifier.post_created(community_id, post_id, member.user_id, text)
            except StoreError as exc:
                logger.warning("New post notification for %s failed: %s", post_id, exc)
        return Outcome.success(post_id)

    async def delete_post(self, post_id: str, acting_user_id: str | None) -> Outcome:
        """Delete a post with its comments and likes.

        Allowed for its author and for community admins.
        """
        if not acting_user_id:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED)
        post = await self.store.get(POSTS, post_id)
        if post is None:
            return Outcome.failure(OutcomeReason.NOT_FOUND, "Post not found")

        community_id = post["community_id"]
        if post["author_id"] != acting_user_id:
            membership = await self._membership(community_id, acting_user_id)
            if not has_permission(membership, ACTION_DELETE_ANY_POST):
                return Outcome.failure(
                    OutcomeReason.UNAUTHORIZED, "Only the author or an admin can delete a post"
                )

        await self.store.delete(POSTS, post_id)
        await self.store.delete_where(POST_COMMENTS, {"post_id": post_id})
        await self.store.delete_where(POST_LIKES, {"post_id": post_id})
        await self.store.update(
            COMMUNITIES, community_id, {"post_count": Increment(-1, floor=0)}
        )
        logger.info("Post %s deleted by %s", post_id, acting_user_id)
        return Outcome.success()

    async def list_posts(self, community_id: str, limit: int | None = None) -> list[Document]:
        return await self.store.query(
            POSTS,
            {"community_id": community_id},
            QueryOptions(
                order_by="created_at", descending=True, limit=limit or settings.post_page_size
            ),
        )

    # --- Likes and comments ------------------------------------------------

    async def like_post(self, post_id: str, user: Identity | None) -> Outcome:
        """Like a post as a member of its community.

        Liking twice is a no-op. The check and the insert are separate
        store calls, like joining; ``like_count`` counts users who liked.
        """
        if user is None or not user.user_id:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED)
        post = await self.store.get(POSTS, post_id)
        if post is None:
            return Outcome.failure(OutcomeReason.NOT_FOUND, "Post not found")
        checked = await self._check_member(post["community_id"], user, ACTION_VIEW_COMMUNITY)
        if not checked:
            return checked

        if await self.store.count(POST_LIKES, {"post_id": post_id, "user_id": user.user_id}):
            return Outcome.success(post_id)
        await self.store.insert(
            POST_LIKES,
            {
                "post_id": post_id,
                "community_id": post["community_id"],
                "user_id": user.user_id,
                "created_at": utcnow(),
            },
        )
        await self.store.update(
            POSTS, post_id, {"like_count": Increment(1), "updated_at": utcnow()}
        )
        return Outcome.success(post_id)

    async def unlike_post(self, post_id: str, user_id: str | None) -> Outcome:
        """Withdraw the user's like. Unliking a post never liked is a no-op."""
        if not user_id:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED)
        if await self.store.get(POSTS, post_id) is None:
            return Outcome.failure(OutcomeReason.NOT_FOUND, "Post not found")

        removed = await self.store.delete_where(
            POST_LIKES, {"post_id": post_id, "user_id": user_id}
        )
        if removed:
            await self.store.update(
                POSTS,
                post_id,
                {"like_count": Increment(-1, floor=0), "updated_at": utcnow()},
            )
        return Outcome.success(post_id)

    async def add_comment(self, post_id: str, author: Identity | None, content: str) -> Outcome:
        """Comment on a post; the outcome value is the comment id."""
        text = _require_content(content)
        if author is None or not author.user_id:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED)
        post = await self.store.get(POSTS, post_id)
        if post is None:
            return Outcome.failure(OutcomeReason.NOT_FOUND, "Post not found")
        community_id = post["community_id"]
        checked = await self._check_member(community_id, author, ACTION_VIEW_COMMUNITY)
        if not checked:
            return checked
        member: Identity = checked.value

        now = utcnow()
        comment_id = await self.store.insert(
            POST_COMMENTS,
            {
                "post_id": post_id,
                "community_id": community_id,
                "user_id": member.user_id,
                "user_name": member.display_name or "Anonymous",
                "user_photo": member.photo_url,
                "content": text,
                "created_at": now,
            },
        )
        await self.store.update(
            POSTS, post_id, {"comment_count": Increment(1), "updated_at": now}
        )
        await self.store.update(COMMUNITIES, community_id, {"last_activity_at": now})
        return Outcome.success(comment_id)

    async def list_comments(self, post_id: str) -> list[Document]:
        """Return a post's comments, oldest first."""
        return await self.store.query(
            POST_COMMENTS, {"post_id": post_id}, QueryOptions(order_by="created_at")
        )

    # --- Chat --------------------------------------------------------------

    async def send_chat_message(
        self, community_id: str, author: Identity | None, content: str
    ) -> Outcome:
        text = _require_content(content)
        checked = await self._check_member(community_id, author, ACTION_VIEW_COMMUNITY)
        if not checked:
            return checked
        member: Identity = checked.value

        now = utcnow()
        message_id = await self.store.insert(
            CHAT_MESSAGES,
            {
                "community_id": community_id,
                "user_id": member.user_id,
                "user_name": member.display_name or "Anonymous",
                "user_photo": member.photo_url,
                "content": text,
                "created_at": now,
            },
        )
        await self.store.update(COMMUNITIES, community_id, {"last_activity_at": now})
        return Outcome.success(message_id)

    async def list_chat(self, community_id: str, limit: int | None = None) -> list[Document]:
        """Return the most recent messages, oldest first."""
        recent = await self.store.query(
            CHAT_MESSAGES,
            {"community_id": community_id},
            QueryOptions(
                order_by="created_at",
                descending=True,
                limit=limit or settings.chat_history_limit,
            ),
        )
        return list(reversed(recent))
