"""Document store interface consumed by the membership core.

The store offers point reads, equality-filtered queries, inserts with a
generated id, named-field updates (including atomic increments), deletes,
and subscriptions that re-deliver the full matching result set after every
write. No cross-document transactions are assumed: callers sequence
multi-document writes themselves and handle partial failure.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from itertools import count
from typing import Any

from mindhaven.core.errors import StoreError

# Configure logger for this module
logger = logging.getLogger(__name__)

Document = dict[str, Any]
Filters = Mapping[str, Any]
OnChange = Callable[[list[Document]], None]


@dataclass(frozen=True)
class Increment:
    """Field update value that adds ``delta`` atomically.

    When ``floor`` is set the stored value never drops below it.
    """

    delta: int
    floor: int | None = None


@dataclass(frozen=True)
class QueryOptions:
    """Ordering and limit applied to a filtered query."""

    order_by: str | None = None
    descending: bool = False
    limit: int | None = None


@dataclass
class _Listener:
    collection: str
    filters: dict[str, Any]
    options: QueryOptions
    on_change: OnChange
    active: bool = field(default=True)


class Subscription:
    """Handle returned by :meth:`DocumentStore.subscribe`."""

    def __init__(self, store: DocumentStore, listener_id: int) -> None:
        self._store = store
        self._listener_id = listener_id

    @property
    def active(self) -> bool:
        """Return True until :meth:`unsubscribe` has been called."""
        return self._store._is_listening(self._listener_id)

    def unsubscribe(self) -> None:
        """Stop delivering snapshots. Safe to call more than once."""
        self._store._remove_listener(self._listener_id)


class DocumentStore(ABC):
    """Abstract document database used by the services layer."""

    def __init__(self) -> None:
        self._listeners: dict[int, _Listener] = {}
        self._listener_ids = count(1)

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Return one document by id, or None when absent."""

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Filters | None = None,
        options: QueryOptions | None = None,
    ) -> list[Document]:
        """Return documents whose fields equal every value in ``filters``."""

    @abstractmethod
    async def count(self, collection: str, filters: Filters | None = None) -> int:
        """Return the number of matching documents."""

    @abstractmethod
    async def count_distinct(
        self,
        collection: str,
        field_name: str,
        filters: Filters | None = None,
    ) -> int:
        """Return the number of distinct ``field_name`` values among matches."""

    @abstractmethod
    async def insert(self, collection: str, data: Mapping[str, Any]) -> str:
        """Insert a document under a generated id and return the id."""

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        """Create or overwrite the named fields of the document ``doc_id``."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> bool:
        """Update named fields. Returns False (no-op) when the document is absent.

        Values may be :class:`Increment` instances for atomic counter updates.
        """

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """Delete by id. Returns False when nothing was deleted."""

    @abstractmethod
    async def delete_where(self, collection: str, filters: Filters) -> int:
        """Delete every matching document and return how many were removed."""

    @abstractmethod
    def _snapshot(
        self,
        collection: str,
        filters: Mapping[str, Any],
        options: QueryOptions,
    ) -> list[Document]:
        """Synchronously read the current result set for a subscription."""

    def subscribe(
        self,
        collection: str,
        filters: Filters | None,
        on_change: OnChange,
        options: QueryOptions | None = None,
    ) -> Subscription:
        """Register ``on_change`` for a live query.

        The current result set is delivered before this method returns and
        again, in full, after every write to ``collection``.
        """
        listener_id = next(self._listener_ids)
        listener = _Listener(
            collection=collection,
            filters=dict(filters or {}),
            options=options or QueryOptions(),
            on_change=on_change,
        )
        self._listeners[listener_id] = listener
        self._deliver(listener_id, listener)
        return Subscription(self, listener_id)

    def _is_listening(self, listener_id: int) -> bool:
        listener = self._listeners.get(listener_id)
        return listener is not None and listener.active

    def _remove_listener(self, listener_id: int) -> None:
        listener = self._listeners.pop(listener_id, None)
        if listener is not None:
            listener.active = False

    def _publish(self, collection: str) -> None:
        """Re-deliver full result sets to every listener on ``collection``."""
        targets = [
            (listener_id, listener)
            for listener_id, listener in list(self._listeners.items())
            if listener.collection == collection
        ]
        if targets:
            logger.debug("Publishing %s to %d listeners", collection, len(targets))
        for listener_id, listener in targets:
            try:
                self._deliver(listener_id, listener)
            except StoreError as exc:
                logger.warning("Snapshot refresh for listener %d failed: %s", listener_id, exc)

    def _deliver(self, listener_id: int, listener: _Listener) -> None:
        if not listener.active:
            return
        documents = self._snapshot(listener.collection, listener.filters, listener.options)
        try:
            listener.on_change(documents)
        except Exception:
            # The write has already committed; a faulty consumer must not fail it.
            logger.exception("Listener %d on %s raised", listener_id, listener.collection)
