# tests/services/test_live.py
"""Tests for live views: mounted guard and optimistic rollback."""

from __future__ import annotations

import asyncio

import pytest

from mindhaven.core.errors import StoreError
from mindhaven.services.live import LiveView
from mindhaven.services.membership import CommunityDetails, MembershipManager
from mindhaven.services.outcome import Outcome, OutcomeReason
from mindhaven.store import QueryOptions
from mindhaven.store.collections import COMMUNITY_MEMBERS


async def _community(manager: MembershipManager) -> str:
    outcome = await manager.create_community(
        CommunityDetails(name="Night Owls", description="Sleep support after midnight", tags=["sleep"]),
        "u1",
    )
    return outcome.value


@pytest.mark.asyncio
async def test_view_follows_store_writes(manager) -> None:
    community_id = await _community(manager)
    seen: list[list[str]] = []

    with LiveView(
        manager.store,
        COMMUNITY_MEMBERS,
        {"community_id": community_id},
        QueryOptions(order_by="joined_at"),
    ) as view:
        view.add_listener(lambda docs: seen.append([doc["user_id"] for doc in docs]))
        await manager.join_community(community_id, "u2")

        assert [doc["user_id"] for doc in view.documents] == ["u1", "u2"]

    assert seen == [["u1"], ["u1", "u2"]]
    assert not view.mounted


@pytest.mark.asyncio
async def test_closed_view_ignores_later_writes(manager) -> None:
    community_id = await _community(manager)
    view = LiveView(manager.store, COMMUNITY_MEMBERS, {"community_id": community_id})

    view.close()
    view.close()
    await manager.join_community(community_id, "u2")

    assert [doc["user_id"] for doc in view.documents] == ["u1"]


@pytest.mark.asyncio
async def test_guard_discards_results_after_close(manager) -> None:
    community_id = await _community(manager)
    view = LiveView(manager.store, COMMUNITY_MEMBERS, {"community_id": community_id})

    async def slow_count() -> int:
        await asyncio.sleep(0)
        return await manager.get_active_member_count(community_id)

    pending = asyncio.ensure_future(view.guard(slow_count()))
    view.close()

    assert await pending is None
    assert await view.guard(slow_count(), default=-1) == -1


@pytest.mark.asyncio
async def test_guard_passes_results_while_mounted(manager) -> None:
    community_id = await _community(manager)
    with LiveView(manager.store, COMMUNITY_MEMBERS, {"community_id": community_id}) as view:
        assert await view.guard(manager.get_active_member_count(community_id)) == 1


@pytest.mark.asyncio
async def test_optimistic_update_kept_on_success(manager) -> None:
    community_id = await _community(manager)
    view = LiveView(manager.store, COMMUNITY_MEMBERS, {"community_id": community_id})

    outcome = await view.optimistic(
        lambda docs: docs + [{"user_id": "u2", "role": "member"}],
        lambda: manager.join_community(community_id, "u2"),
    )

    assert outcome.ok
    assert sorted(doc["user_id"] for doc in view.documents) == ["u1", "u2"]
    # The store's delivery replaced the placeholder with the real record.
    assert all("id" in doc for doc in view.documents)
    view.close()


@pytest.mark.asyncio
async def test_optimistic_update_rolled_back_on_refusal(manager) -> None:
    community_id = await _community(manager)
    view = LiveView(manager.store, COMMUNITY_MEMBERS, {"community_id": community_id})
    shown: list[int] = []
    view.add_listener(lambda docs: shown.append(len(docs)))

    outcome = await view.optimistic(
        lambda docs: [],
        lambda: manager.leave_community(community_id, "u1"),
    )

    assert outcome.reason == OutcomeReason.LAST_ADMIN
    assert [doc["user_id"] for doc in view.documents] == ["u1"]
    assert shown == [1, 0, 1]
    view.close()


@pytest.mark.asyncio
async def test_optimistic_update_rolled_back_on_error(manager) -> None:
    community_id = await _community(manager)
    view = LiveView(manager.store, COMMUNITY_MEMBERS, {"community_id": community_id})

    async def failing_command() -> Outcome:
        raise StoreError("write rejected")

    with pytest.raises(StoreError):
        await view.optimistic(lambda docs: docs + [{"user_id": "u9"}], failing_command)

    assert view.documents == view.confirmed
    assert len(view.documents) == 1
    view.close()


@pytest.mark.asyncio
async def test_failing_view_listener_does_not_fail_committed_join(manager) -> None:
    community_id = await _community(manager)
    view = LiveView(manager.store, COMMUNITY_MEMBERS, {"community_id": community_id})

    def explode(docs) -> None:
        if len(docs) > 1:
            raise RuntimeError("render failed")

    view.add_listener(explode)

    outcome = await manager.join_community(community_id, "u2")

    assert outcome.ok
    assert await manager.get_membership(community_id, "u2") is not None
    assert sorted(doc["user_id"] for doc in view.confirmed) == ["u1", "u2"]
    view.close()
