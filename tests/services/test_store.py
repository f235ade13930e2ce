# tests/services/test_store.py
"""Tests for the SQL-backed document store and its subscriptions."""

from __future__ import annotations

from datetime import timedelta

import pytest

from mindhaven.core.errors import StoreError
from mindhaven.store import Increment, QueryOptions
from mindhaven.store.collections import COMMUNITIES, COMMUNITY_MEMBERS, USERS


def _community(**overrides):
    data = {"name": "Calm", "description": "Breathing together", "created_by": "u1"}
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_insert_get_and_query(store) -> None:
    doc_id = await store.insert(COMMUNITIES, _community(tags=["calm"]))

    document = await store.get(COMMUNITIES, doc_id)

    assert document["id"] == doc_id
    assert document["tags"] == ["calm"]
    assert document["member_count"] == 0
    assert await store.query(COMMUNITIES, {"name": "Calm"}) == [document]
    assert await store.get(COMMUNITIES, "missing") is None


@pytest.mark.asyncio
async def test_timestamps_read_back_as_utc(store) -> None:
    doc_id = await store.insert(COMMUNITIES, _community())

    created_at = (await store.get(COMMUNITIES, doc_id))["created_at"]

    assert created_at.utcoffset() == timedelta(0)


@pytest.mark.asyncio
async def test_query_ordering_and_limit(store) -> None:
    for user_id in ("a", "b", "c"):
        await store.insert(COMMUNITY_MEMBERS, {"community_id": "c1", "user_id": user_id})

    newest = await store.query(
        COMMUNITY_MEMBERS,
        {"community_id": "c1"},
        QueryOptions(order_by="joined_at", descending=True, limit=2),
    )

    assert [doc["user_id"] for doc in newest] == ["c", "b"]


@pytest.mark.asyncio
async def test_update_missing_document_is_noop(store) -> None:
    assert await store.update(COMMUNITIES, "missing", {"name": "x"}) is False
    assert await store.count(COMMUNITIES) == 0


@pytest.mark.asyncio
async def test_increment_with_floor(store) -> None:
    doc_id = await store.insert(COMMUNITIES, _community(member_count=1))

    await store.update(COMMUNITIES, doc_id, {"member_count": Increment(2)})
    assert (await store.get(COMMUNITIES, doc_id))["member_count"] == 3

    await store.update(COMMUNITIES, doc_id, {"member_count": Increment(-5, floor=0)})
    assert (await store.get(COMMUNITIES, doc_id))["member_count"] == 0


@pytest.mark.asyncio
async def test_set_creates_then_updates(store) -> None:
    await store.set(USERS, "u1", {"display_name": "Ann"})
    await store.set(USERS, "u1", {"photo_url": "https://img/ann.png"})

    profile = await store.get(USERS, "u1")
    assert profile["display_name"] == "Ann"
    assert profile["photo_url"] == "https://img/ann.png"


@pytest.mark.asyncio
async def test_count_distinct_ignores_duplicates(store) -> None:
    for user_id in ("a", "a", "b"):
        await store.insert(COMMUNITY_MEMBERS, {"community_id": "c1", "user_id": user_id})

    assert await store.count(COMMUNITY_MEMBERS, {"community_id": "c1"}) == 3
    assert await store.count_distinct(COMMUNITY_MEMBERS, "user_id", {"community_id": "c1"}) == 2


@pytest.mark.asyncio
async def test_delete_and_delete_where(store) -> None:
    keep = await store.insert(COMMUNITY_MEMBERS, {"community_id": "c2", "user_id": "a"})
    for user_id in ("a", "b"):
        await store.insert(COMMUNITY_MEMBERS, {"community_id": "c1", "user_id": user_id})

    assert await store.delete_where(COMMUNITY_MEMBERS, {"community_id": "c1"}) == 2
    assert await store.delete(COMMUNITY_MEMBERS, keep) is True
    assert await store.delete(COMMUNITY_MEMBERS, keep) is False


@pytest.mark.asyncio
async def test_unfiltered_delete_is_refused(store) -> None:
    with pytest.raises(StoreError):
        await store.delete_where(COMMUNITY_MEMBERS, {})


@pytest.mark.asyncio
async def test_unknown_collection_and_field(store) -> None:
    with pytest.raises(StoreError):
        await store.query("journals")
    with pytest.raises(StoreError):
        await store.query(COMMUNITIES, {"colour": "blue"})


@pytest.mark.asyncio
async def test_subscription_delivers_full_result_set(store) -> None:
    deliveries: list[list[str]] = []
    subscription = store.subscribe(
        COMMUNITY_MEMBERS,
        {"community_id": "c1"},
        lambda docs: deliveries.append([doc["user_id"] for doc in docs]),
        QueryOptions(order_by="joined_at"),
    )

    await store.insert(COMMUNITY_MEMBERS, {"community_id": "c1", "user_id": "a"})
    await store.insert(COMMUNITY_MEMBERS, {"community_id": "c2", "user_id": "z"})
    await store.insert(COMMUNITY_MEMBERS, {"community_id": "c1", "user_id": "b"})

    # Initial delivery, then one per write to the collection, filtered each time.
    assert deliveries == [[], ["a"], ["a"], ["a", "b"]]
    assert subscription.active


@pytest.mark.asyncio
async def test_unsubscribe_stops_deliveries(store) -> None:
    deliveries: list[int] = []
    subscription = store.subscribe(COMMUNITIES, None, lambda docs: deliveries.append(len(docs)))

    subscription.unsubscribe()
    subscription.unsubscribe()
    await store.insert(COMMUNITIES, _community())

    assert deliveries == [0]
    assert not subscription.active


@pytest.mark.asyncio
async def test_faulty_listener_does_not_fail_write(store) -> None:
    calls = []

    def broken(docs):
        calls.append(len(docs))
        if docs:
            raise KeyError("boom")

    store.subscribe(COMMUNITIES, None, broken)

    doc_id = await store.insert(COMMUNITIES, _community())

    assert calls == [0, 1]
    assert await store.get(COMMUNITIES, doc_id) is not None
