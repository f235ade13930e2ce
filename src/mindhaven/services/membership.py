"""Community membership lifecycle, role management and member counts.

The :class:`MembershipManager` mediates every state transition that touches
community membership. It keeps these invariants, none of which the store
enforces on its own:

* a community always has at least one admin user, except while it is
  deleted; duplicate records of one user count once;
* a user has at most one membership per community (checked before insert);
* the cached ``member_count`` converges to the live membership count;
* only admins delete the community, change roles or remove members;
* deleting a community deletes its memberships, posts (with their
  comments and likes) and chat messages.

Every multi-document sequence here is non-atomic. Known races (two joins by
the same user, two last-but-one admins leaving together) are accepted; the
live count query de-duplicates and :meth:`MembershipManager.reconcile_member_count`
repairs the stored state.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from mindhaven.core.errors import (
    PartialCascadeFailure,
    PartialWriteError,
    StoreError,
    ValidationError,
)
from mindhaven.core.settings import settings
from mindhaven.db.time import utcnow
from mindhaven.models.community import MEMBERSHIP_ROLES, ROLE_ADMIN, ROLE_MEMBER
from mindhaven.services.notifications import NotificationHook, NullNotificationHook
from mindhaven.services.outcome import Outcome, OutcomeReason
from mindhaven.store.base import Document, DocumentStore, Increment, QueryOptions
from mindhaven.store.collections import (
    CHAT_MESSAGES,
    COMMUNITIES,
    COMMUNITY_MEMBERS,
    POST_COMMENTS,
    POST_LIKES,
    POSTS,
    USERS,
)

# Configure logger for this module
logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {"name", "description", "tags", "rules", "is_public", "image_url", "banner_url"}
)

# Cascade order matters only in that the community record goes last.
CASCADE_STEPS: tuple[tuple[str, str], ...] = (
    ("memberships", COMMUNITY_MEMBERS),
    ("posts", POSTS),
    ("post_comments", POST_COMMENTS),
    ("post_likes", POST_LIKES),
    ("chat_messages", CHAT_MESSAGES),
)


@dataclass(frozen=True)
class CommunityDetails:
    """User-supplied community metadata."""

    name: str
    description: str
    tags: list[str] = field(default_factory=list)
    rules: list[str] = field(default_factory=list)
    is_public: bool = True
    image_url: str | None = None
    banner_url: str | None = None


def _clean_list(values: Iterable[str]) -> list[str]:
    cleaned: list[str] = []
    for value in values:
        text = value.strip()
        if text and text not in cleaned:
            cleaned.append(text)
    return cleaned


def validate_community_details(details: CommunityDetails) -> CommunityDetails:
    """Return a normalized copy of ``details`` or raise ValidationError.

    Raises:
        ValidationError: If the name, description or tag list is too short.
    """
    name = details.name.strip()
    description = details.description.strip()
    tags = _clean_list(details.tags)
    errors: dict[str, str] = {}

    if not name:
        errors["name"] = "Community name is required"
    elif len(name) < settings.community_name_min_length:
        errors["name"] = f"Name must be at least {settings.community_name_min_length} characters"

    if not description:
        errors["description"] = "Description is required"
    elif len(description) < settings.community_description_min_length:
        errors["description"] = (
            f"Description must be at least {settings.community_description_min_length} characters"
        )

    if len(tags) < settings.community_min_tags:
        errors["tags"] = "At least one tag is required"

    if errors:
        raise ValidationError(errors)
    return replace(
        details,
        name=name,
        description=description,
        tags=tags,
        rules=_clean_list(details.rules),
    )


class MembershipManager:
    """Owns community membership state transitions.

    All actor ids are explicit arguments; ``None`` or an empty string means
    nobody is signed in and every mutating operation is refused.
    """

    def __init__(self, store: DocumentStore, notifier: NotificationHook | None = None) -> None:
        self.store = store
        self.notifier = notifier or NullNotificationHook()

    # --- Read paths --------------------------------------------------------

    async def get_community(self, community_id: str) -> Document | None:
        return await self.store.get(COMMUNITIES, community_id)

    async def list_communities(self) -> list[Document]:
        return await self.store.query(
            COMMUNITIES, options=QueryOptions(order_by="created_at", descending=True)
        )

    async def get_membership(self, community_id: str, user_id: str | None) -> Document | None:
        """Return the user's membership in the community, if any."""
        if not user_id:
            return None
        memberships = await self.store.query(
            COMMUNITY_MEMBERS,
            {"community_id": community_id, "user_id": user_id},
            QueryOptions(order_by="joined_at"),
        )
        return memberships[0] if memberships else None

    async def is_admin(self, community_id: str, user_id: str | None) -> bool:
        if not user_id:
            return False
        admins = await self.store.count(
            COMMUNITY_MEMBERS,
            {"community_id": community_id, "user_id": user_id, "role": ROLE_ADMIN},
        )
        return admins > 0

    async def count_admins(self, community_id: str) -> int:
        """Return the number of distinct users holding an admin record."""
        return await self.store.count_distinct(
            COMMUNITY_MEMBERS, "user_id", {"community_id": community_id, "role": ROLE_ADMIN}
        )

    async def _has_other_admin(self, community_id: str, user_id: str) -> bool:
        """Return True if some user other than ``user_id`` is an admin.

        Duplicate records of one user count as that single user.
        """
        admins = await self.store.query(
            COMMUNITY_MEMBERS, {"community_id": community_id, "role": ROLE_ADMIN}
        )
        return any(admin["user_id"] != user_id for admin in admins)

    async def get_active_member_count(self, community_id: str) -> int:
        """Return the authoritative member count from a fresh query.

        Duplicate records left by a join race count once. The cached
        ``member_count`` field is never consulted.
        """
        return await self.store.count_distinct(
            COMMUNITY_MEMBERS, "user_id", {"community_id": community_id}
        )

    async def list_members(self, community_id: str) -> list[Document]:
        """Return memberships newest first, each with a ``profile`` entry."""
        memberships = await self.store.query(
            COMMUNITY_MEMBERS,
            {"community_id": community_id},
            QueryOptions(order_by="joined_at", descending=True),
        )
        for membership in memberships:
            profile = await self.store.get(USERS, membership["user_id"])
            membership["profile"] = {
                "display_name": profile.get("display_name") if profile else None,
                "photo_url": profile.get("photo_url") if profile else None,
            }
        return memberships

    async def list_user_communities(self, user_id: str) -> list[Document]:
        """Return the communities the user belongs to with membership id and role.

        Memberships pointing at a community that no longer exists are skipped.
        """
        memberships = await self.store.query(COMMUNITY_MEMBERS, {"user_id": user_id})
        communities: list[Document] = []
        seen: set[str] = set()
        for membership in memberships:
            community_id = membership["community_id"]
            if community_id in seen:
                continue
            community = await self.store.get(COMMUNITIES, community_id)
            if community is None:
                logger.info("Skipping membership %s for missing community %s",
                            membership["id"], community_id)
                continue
            seen.add(community_id)
            communities.append(
                {**community, "membership_id": membership["id"], "role": membership["role"]}
            )
        return communities

    # --- Lifecycle ---------------------------------------------------------

    async def create_community(
        self,
        details: CommunityDetails,
        creator_id: str | None,
        *,
        community_id: str | None = None,
    ) -> Outcome:
        """Create a community and its creator's admin membership.

        Args:
            details: Community metadata; validated before any write.
            creator_id: Acting user id.
            community_id: Optional fixed id (used for the predefined catalog).

        Returns:
            Outcome whose value is the new community id.

        Raises:
            ValidationError: If ``details`` breaks the naming policy.
            StoreError: If the community record could not be written.
            PartialWriteError: If the admin membership failed and the
                community record could not be removed again.
        """
        if not creator_id:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED)
        details = validate_community_details(details)
        now = utcnow()
        record = {
            "name": details.name,
            "description": details.description,
            "tags": details.tags,
            "rules": details.rules,
            "is_public": details.is_public,
            "image_url": details.image_url,
            "banner_url": details.banner_url,
            "created_by": creator_id,
            "member_count": 1,
            "post_count": 0,
            "created_at": now,
            "updated_at": now,
        }
        if community_id is None:
            community_id = await self.store.insert(COMMUNITIES, record)
        else:
            await self.store.set(COMMUNITIES, community_id, record)

        try:
            await self.store.insert(
                COMMUNITY_MEMBERS,
                {
                    "community_id": community_id,
                    "user_id": creator_id,
                    "role": ROLE_ADMIN,
                    "joined_at": now,
                },
            )
        except StoreError as exc:
            logger.warning(
                "Admin membership for new community %s failed, removing it: %s", community_id, exc
            )
            try:
                await self.store.delete(COMMUNITIES, community_id)
            except StoreError as cleanup_exc:
                raise PartialWriteError(
                    community_id, ["community"], "admin_membership"
                ) from cleanup_exc
            raise

        logger.info("Community %s created by %s", community_id, creator_id)
        return Outcome.success(community_id)

    async def update_community(
        self,
        community_id: str,
        acting_user_id: str | None,
        changes: Mapping[str, Any],
    ) -> Outcome:
        """Apply admin edits to community metadata.

        Raises:
            ValidationError: If a field is not editable or the result breaks
                the naming policy.
        """
        if not acting_user_id:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED)
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError({name: "Field cannot be edited" for name in sorted(unknown)})
        community = await self.store.get(COMMUNITIES, community_id)
        if community is None:
            return Outcome.failure(OutcomeReason.NOT_FOUND, "Community not found")
        if not await self.is_admin(community_id, acting_user_id):
            return Outcome.failure(OutcomeReason.UNAUTHORIZED, "Only admins can edit a community")

        merged = CommunityDetails(
            **{name: changes.get(name, community.get(name)) for name in EDITABLE_FIELDS}
        )
        merged = validate_community_details(merged)
        fields = {name: getattr(merged, name) for name in changes}
        fields["updated_at"] = utcnow()
        await self.store.update(COMMUNITIES, community_id, fields)
        return Outcome.success(community_id)

    async def join_community(self, community_id: str, user_id: str | None) -> Outcome:
        """Add ``user_id`` as a member.

        Joining twice succeeds without creating a second record. The check
        and the insert are separate store calls, so concurrent joins by the
        same user can still both insert.
        """
        if not user_id:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED)
        community = await self.store.get(COMMUNITIES, community_id)
        if community is None:
            return Outcome.failure(OutcomeReason.NOT_FOUND, "Community not found")

        existing = await self.get_membership(community_id, user_id)
        if existing is not None:
            return Outcome.success(existing["id"], OutcomeReason.ALREADY_MEMBER)

        membership_id = await self.store.insert(
            COMMUNITY_MEMBERS,
            {
                "community_id": community_id,
                "user_id": user_id,
                "role": ROLE_MEMBER,
                "joined_at": utcnow(),
            },
        )
        await self._adjust_member_count(community_id, 1)
        await self._emit("member_joined", self.notifier.member_joined(community_id, user_id))
        return Outcome.success(membership_id)

    async def leave_community(self, community_id: str, user_id: str | None) -> Outcome:
        """Remove the user's own membership.

        The sole admin may not leave; they must promote someone else or
        delete the community instead.
        """
        if not user_id:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED)
        memberships = await self.store.query(
            COMMUNITY_MEMBERS, {"community_id": community_id, "user_id": user_id}
        )
        if not memberships:
            return Outcome.failure(OutcomeReason.NOT_MEMBER, "Not a member of this community")

        if any(membership["role"] == ROLE_ADMIN for membership in memberships):
            if not await self._has_other_admin(community_id, user_id):
                return Outcome.failure(
                    OutcomeReason.LAST_ADMIN,
                    "The last admin cannot leave; assign another admin or delete the community",
                )

        # Duplicates from a join race go together; they are one logical member.
        for membership in memberships:
            await self.store.delete(COMMUNITY_MEMBERS, membership["id"])
        await self._adjust_member_count(community_id, -1)
        return Outcome.success()

    async def change_member_role(
        self,
        community_id: str,
        acting_user_id: str | None,
        target_membership_id: str,
        new_role: str,
    ) -> Outcome:
        """Set the role on another membership. Admin only.

        Demoting the only remaining admin is refused, which keeps at least
        one admin in place without waiting for a later leave or delete.

        Raises:
            ValidationError: If ``new_role`` is not a known role.
        """
        if new_role not in MEMBERSHIP_ROLES:
            raise ValidationError({"role": f"Role must be one of {', '.join(MEMBERSHIP_ROLES)}"})
        if not acting_user_id:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED)
        if not await self.is_admin(community_id, acting_user_id):
            return Outcome.failure(OutcomeReason.UNAUTHORIZED, "Only admins can change roles")

        target = await self.store.get(COMMUNITY_MEMBERS, target_membership_id)
        if target is None or target["community_id"] != community_id:
            return Outcome.failure(OutcomeReason.NOT_FOUND, "Membership not found")
        if target["role"] == new_role:
            return Outcome.success(target_membership_id)
        if target["role"] == ROLE_ADMIN and not await self._has_other_admin(
            community_id, target["user_id"]
        ):
            return Outcome.failure(
                OutcomeReason.LAST_ADMIN, "A community needs at least one admin"
            )

        await self.store.update(
            COMMUNITY_MEMBERS,
            target_membership_id,
            {"role": new_role, "updated_at": utcnow()},
        )
        await self._emit(
            "role_changed",
            self.notifier.role_changed(community_id, target["user_id"], new_role, acting_user_id),
        )
        return Outcome.success(target_membership_id)

    async def remove_member(
        self,
        community_id: str,
        acting_user_id: str | None,
        target_membership_id: str,
    ) -> Outcome:
        """Delete another user's membership. Admin only.

        The cached counter is decremented exactly as for a voluntary leave.
        """
        if not acting_user_id:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED)
        if not await self.is_admin(community_id, acting_user_id):
            return Outcome.failure(OutcomeReason.UNAUTHORIZED, "Only admins can remove members")

        target = await self.store.get(COMMUNITY_MEMBERS, target_membership_id)
        if target is None or target["community_id"] != community_id:
            return Outcome.failure(OutcomeReason.NOT_FOUND, "Membership not found")
        if target["role"] == ROLE_ADMIN and not await self._has_other_admin(
            community_id, target["user_id"]
        ):
            return Outcome.failure(
                OutcomeReason.LAST_ADMIN, "A community needs at least one admin"
            )

        await self.store.delete(COMMUNITY_MEMBERS, target_membership_id)
        await self._adjust_member_count(community_id, -1)
        await self._emit(
            "member_removed",
            self.notifier.member_removed(community_id, target["user_id"], acting_user_id),
        )
        return Outcome.success()

    async def delete_community(self, community_id: str, acting_user_id: str | None) -> Outcome:
        """Delete a community and everything scoped to it. Admin only.

        Memberships, posts, comments, likes and chat messages go first and
        the community record last, so an interrupted cascade leaves a
        community that still exists rather than content pointing at nothing. Nothing is rolled
        back.

        Raises:
            PartialCascadeFailure: If a step fails after an earlier step
                already deleted something.
            StoreError: If the very first step fails.
        """
        if not acting_user_id:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED)
        if not await self.is_admin(community_id, acting_user_id):
            if await self.store.get(COMMUNITIES, community_id) is None:
                return Outcome.failure(OutcomeReason.NOT_FOUND, "Community not found")
            return Outcome.failure(OutcomeReason.UNAUTHORIZED, "Only admins can delete a community")

        completed: list[str] = []
        steps = [*CASCADE_STEPS, ("community", COMMUNITIES)]
        for step, collection in steps:
            try:
                if collection == COMMUNITIES:
                    removed = int(await self.store.delete(COMMUNITIES, community_id))
                else:
                    removed = await self.store.delete_where(
                        collection, {"community_id": community_id}
                    )
            except StoreError as exc:
                if not completed:
                    raise
                logger.error(
                    "Cascade delete of community %s failed at %s after %s",
                    community_id,
                    step,
                    completed,
                )
                raise PartialCascadeFailure(community_id, completed, step) from exc
            completed.append(step)
            logger.info("Deleted %d %s for community %s", removed, step, community_id)

        return Outcome.success()

    # --- Count reconciliation ---------------------------------------------

    async def reconcile_member_count(self, community_id: str) -> int:
        """Repair stored membership state from the live records.

        Removes duplicate memberships left by concurrent joins (keeping the
        admin record if any, else the earliest) and rewrites the cached
        ``member_count`` from the live count.

        Returns:
            The authoritative member count.
        """
        memberships = await self.store.query(
            COMMUNITY_MEMBERS,
            {"community_id": community_id},
            QueryOptions(order_by="joined_at"),
        )
        by_user: dict[str, list[Document]] = {}
        for membership in memberships:
            by_user.setdefault(membership["user_id"], []).append(membership)

        for user_id, records in by_user.items():
            if len(records) < 2:
                continue
            keep = next((r for r in records if r["role"] == ROLE_ADMIN), records[0])
            for record in records:
                if record["id"] != keep["id"]:
                    await self.store.delete(COMMUNITY_MEMBERS, record["id"])
            logger.info(
                "Removed %d duplicate memberships of %s in %s",
                len(records) - 1,
                user_id,
                community_id,
            )

        live_count = len(by_user)
        community = await self.store.get(COMMUNITIES, community_id)
        if community is not None and community.get("member_count") != live_count:
            logger.info(
                "Member count of %s corrected from %s to %d",
                community_id,
                community.get("member_count"),
                live_count,
            )
            await self.store.update(
                COMMUNITIES, community_id, {"member_count": live_count, "updated_at": utcnow()}
            )
        return live_count

    # --- Internals ---------------------------------------------------------

    async def _adjust_member_count(self, community_id: str, delta: int) -> None:
        """Best-effort counter update; the live count stays authoritative."""
        try:
            await self.store.update(
                COMMUNITIES,
                community_id,
                {"member_count": Increment(delta, floor=0), "updated_at": utcnow()},
            )
        except StoreError as exc:
            logger.warning("Could not adjust member count of %s by %d: %s",
                           community_id, delta, exc)

    async def _emit(self, event: str, notification: Awaitable[None]) -> None:
        if not settings.notifications_enabled:
            # Never awaited; close it.
            close = getattr(notification, "close", None)
            if close is not None:
                close()
            return
        try:
            await notification
        except StoreError as exc:
            logger.warning("Notification hook %s failed: %s", event, exc)
