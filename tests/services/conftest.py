# tests/services/conftest.py
from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import pytest

from mindhaven.core.errors import StoreError
from mindhaven.store.base import Document, DocumentStore, Filters, QueryOptions
from mindhaven.store.sql import SqlDocumentStore


class DelegatingStore(DocumentStore):
    """Store wrapper that can yield before each call and fail chosen calls.

    ``yield_control`` inserts an ``asyncio.sleep(0)`` before every operation
    so concurrent coroutines interleave at each store call. ``failures`` maps
    a method name to the collections for which it raises StoreError.
    """

    def __init__(self, inner: SqlDocumentStore, *, yield_control: bool = False) -> None:
        super().__init__()
        self.inner = inner
        self.yield_control = yield_control
        self.failures: dict[str, set[str]] = {}
        self.calls: list[tuple[str, str]] = []

    async def _before(self, method: str, collection: str) -> None:
        self.calls.append((method, collection))
        if self.yield_control:
            await asyncio.sleep(0)
        if collection in self.failures.get(method, set()):
            raise StoreError(f"{method} on {collection} failed")

    async def get(self, collection: str, doc_id: str) -> Document | None:
        await self._before("get", collection)
        return await self.inner.get(collection, doc_id)

    async def query(
        self,
        collection: str,
        filters: Filters | None = None,
        options: QueryOptions | None = None,
    ) -> list[Document]:
        await self._before("query", collection)
        return await self.inner.query(collection, filters, options)

    async def count(self, collection: str, filters: Filters | None = None) -> int:
        await self._before("count", collection)
        return await self.inner.count(collection, filters)

    async def count_distinct(
        self, collection: str, field_name: str, filters: Filters | None = None
    ) -> int:
        await self._before("count_distinct", collection)
        return await self.inner.count_distinct(collection, field_name, filters)

    async def insert(self, collection: str, data: Mapping[str, Any]) -> str:
        await self._before("insert", collection)
        return await self.inner.insert(collection, data)

    async def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        await self._before("set", collection)
        await self.inner.set(collection, doc_id, data)

    async def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> bool:
        await self._before("update", collection)
        return await self.inner.update(collection, doc_id, fields)

    async def delete(self, collection: str, doc_id: str) -> bool:
        await self._before("delete", collection)
        return await self.inner.delete(collection, doc_id)

    async def delete_where(self, collection: str, filters: Filters) -> int:
        await self._before("delete_where", collection)
        return await self.inner.delete_where(collection, filters)

    def _snapshot(
        self, collection: str, filters: Mapping[str, Any], options: QueryOptions
    ) -> list[Document]:
        return self.inner._snapshot(collection, filters, options)


@pytest.fixture()
def interleaving_store(store: SqlDocumentStore) -> DelegatingStore:
    """Store that hands control to the event loop before every call."""
    return DelegatingStore(store, yield_control=True)


@pytest.fixture()
def failing_store(store: SqlDocumentStore) -> DelegatingStore:
    """Store whose ``failures`` map can be filled in by the test."""
    return DelegatingStore(store)
