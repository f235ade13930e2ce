# tests/services/test_notifications.py
"""Tests for the notification hook, inbox service and message rendering."""

from __future__ import annotations

import pytest

from mindhaven.services.identity import Identity, remember_profile
from mindhaven.services.membership import CommunityDetails
from mindhaven.services.notifications import NotificationService, notification_message
from mindhaven.services.outcome import OutcomeReason


async def _community(manager) -> str:
    outcome = await manager.create_community(
        CommunityDetails(name="Stress Less", description="Tools for busy weeks", tags=["stress"]),
        "u1",
    )
    return outcome.value


@pytest.mark.asyncio
async def test_new_member_notice_uses_profile_name(manager, store) -> None:
    await remember_profile(store, Identity(user_id="u2", display_name="Bea"))
    community_id = await _community(manager)

    await manager.join_community(community_id, "u2")

    [notice] = await NotificationService(store).list_for_user("u1")
    assert notice["actor_name"] == "Bea"
    assert notice["community_name"] == "Stress Less"
    assert notification_message(notice) == "Bea joined Stress Less"


@pytest.mark.asyncio
async def test_every_admin_except_joiner_is_notified(manager, store) -> None:
    community_id = await _community(manager)
    await manager.join_community(community_id, "u2")
    membership = await manager.get_membership(community_id, "u2")
    await manager.change_member_role(community_id, "u1", membership["id"], "admin")
    service = NotificationService(store)
    before = await service.unread_count("u1")

    await manager.join_community(community_id, "u3")

    assert await service.unread_count("u1") == before + 1
    assert [n["type"] for n in await service.list_for_user("u2")] == ["new_member", "role_change"]


@pytest.mark.asyncio
async def test_mark_read_only_for_recipient(manager, store) -> None:
    community_id = await _community(manager)
    await manager.join_community(community_id, "u2")
    service = NotificationService(store)
    [notice] = await service.list_for_user("u1")

    assert (await service.mark_read(notice["id"], "u2")).reason == OutcomeReason.NOT_FOUND
    assert (await service.mark_read(notice["id"], None)).reason == OutcomeReason.UNAUTHENTICATED
    assert (await service.mark_read(notice["id"], "u1")).ok
    assert await service.unread_count("u1") == 0


@pytest.mark.asyncio
async def test_mark_all_read_reports_count(manager, store) -> None:
    community_id = await _community(manager)
    for user_id in ("u2", "u3", "u4"):
        await manager.join_community(community_id, user_id)
    service = NotificationService(store)

    outcome = await service.mark_all_read("u1")

    assert outcome.value == 3
    assert await service.unread_count("u1") == 0
    assert (await service.mark_all_read("u1")).value == 0


def test_notification_message_variants() -> None:
    assert notification_message(None) == ""
    assert notification_message(
        {"type": "new_post", "actor_name": "Ann", "community_name": "Calm"}
    ) == "Ann posted in Calm"
    assert notification_message(
        {"type": "role_change", "role": "admin", "community_name": "Calm"}
    ) == "Your role was changed to admin in Calm"
    assert notification_message({"type": "member_removed"}) == "You were removed from a community"
    assert notification_message({"type": "other"}) == "New notification"
