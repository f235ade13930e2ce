"""Live views over store subscriptions.

A :class:`LiveView` holds the latest full result set for one query and
re-derives everything from each delivery; deliveries are invalidation
signals, not diffs. Once closed, a view ignores late deliveries and the
results of reads that were in flight when it was torn down.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import Any, TypeVar

from mindhaven.core.errors import MindHavenError
from mindhaven.store.base import Document, DocumentStore, Filters, QueryOptions

# Configure logger for this module
logger = logging.getLogger(__name__)

T = TypeVar("T")

ViewCallback = Callable[[list[Document]], None]


class LiveView:
    """Mounted view of a live query with optimistic updates."""

    def __init__(
        self,
        store: DocumentStore,
        collection: str,
        filters: Filters | None = None,
        options: QueryOptions | None = None,
    ) -> None:
        self.collection = collection
        self._mounted = True
        self._documents: list[Document] = []
        self._confirmed: list[Document] = []
        self._callbacks: list[ViewCallback] = []
        self._subscription = store.subscribe(collection, filters, self._receive, options)

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def documents(self) -> list[Document]:
        """Current documents, including any pending optimistic change."""
        return list(self._documents)

    @property
    def confirmed(self) -> list[Document]:
        """Documents as last delivered by the store."""
        return list(self._confirmed)

    def add_listener(self, callback: ViewCallback) -> None:
        """Call ``callback`` with the documents on every change, starting now."""
        self._callbacks.append(callback)
        callback(self.documents)

    def _receive(self, documents: list[Document]) -> None:
        if not self._mounted:
            logger.debug("Dropping delivery for unmounted view on %s", self.collection)
            return
        self._confirmed = list(documents)
        self._replace(documents)

    def _replace(self, documents: list[Document]) -> None:
        self._documents = list(documents)
        for callback in list(self._callbacks):
            callback(self.documents)

    async def guard(self, pending: Awaitable[T], default: T | None = None) -> T | None:
        """Await ``pending`` and drop its result if the view closed meanwhile."""
        result = await pending
        if not self._mounted:
            return default
        return result

    async def optimistic(
        self,
        mutate: Callable[[list[Document]], list[Document]],
        command: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Show ``mutate``'s result immediately, then run ``command``.

        When the command raises or returns a falsy outcome the view is
        restored to the last snapshot confirmed by the store.
        """
        self._replace(mutate(self.documents))
        try:
            result = await command()
        except MindHavenError:
            self._rollback()
            raise
        if not result:
            self._rollback()
        return result

    def _rollback(self) -> None:
        if not self._mounted:
            return
        logger.info("Rolling back optimistic change on %s", self.collection)
        self._replace(self._confirmed)

    def close(self) -> None:
        """Unsubscribe and unmount. Safe to call more than once."""
        if not self._mounted:
            return
        self._mounted = False
        self._subscription.unsubscribe()
        self._callbacks.clear()

    def __enter__(self) -> LiveView:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
