"""SQLAlchemy-backed implementation of the document store."""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import case, delete, distinct, func, inspect, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mindhaven.core.errors import StoreError
from mindhaven.db.session import Base
from mindhaven.db.time import as_utc
from mindhaven.models import (
    ChatMessage,
    Community,
    CommunityMember,
    Notification,
    Post,
    PostComment,
    PostLike,
    UserProfile,
)
from mindhaven.store.base import Document, DocumentStore, Filters, Increment, QueryOptions
from mindhaven.store.collections import (
    CHAT_MESSAGES,
    COMMUNITIES,
    COMMUNITY_MEMBERS,
    NOTIFICATIONS,
    POST_COMMENTS,
    POST_LIKES,
    POSTS,
    USERS,
)

DEFAULT_COLLECTIONS: Mapping[str, type[Base]] = {
    COMMUNITIES: Community,
    COMMUNITY_MEMBERS: CommunityMember,
    POSTS: Post,
    POST_LIKES: PostLike,
    POST_COMMENTS: PostComment,
    CHAT_MESSAGES: ChatMessage,
    NOTIFICATIONS: Notification,
    USERS: UserProfile,
}


def _to_document(obj: Base) -> Document:
    mapper = inspect(type(obj))
    document: Document = {}
    for attr in mapper.column_attrs:
        value = getattr(obj, attr.key)
        # JSON columns come back as shared lists; hand out copies.
        if isinstance(value, list):
            value = list(value)
        elif isinstance(value, datetime):
            value = as_utc(value)
        document[attr.key] = value
    return document


class SqlDocumentStore(DocumentStore):
    """Document store that maps each collection onto one ORM model.

    Every write commits on its own, so a sequence of writes has no
    transactional guarantees, matching the hosted document database it
    stands in for.
    """

    def __init__(
        self,
        session: Session,
        collections: Mapping[str, type[Base]] | None = None,
    ) -> None:
        super().__init__()
        self.session = session
        self._collections = dict(collections or DEFAULT_COLLECTIONS)

    def _model(self, collection: str) -> type[Base]:
        try:
            return self._collections[collection]
        except KeyError as err:
            raise StoreError(f"Unknown collection '{collection}'") from err

    @staticmethod
    def _column(model: type[Base], name: str) -> Any:
        if name not in inspect(model).columns:
            raise StoreError(f"Unknown field '{name}' on {model.__name__}")
        return getattr(model, name)

    def _criteria(self, model: type[Base], filters: Filters | None) -> list[Any]:
        return [self._column(model, name) == value for name, value in (filters or {}).items()]

    @contextmanager
    def _writing(self, collection: str, action: str) -> Iterator[None]:
        try:
            yield
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(f"Failed to {action} in {collection}: {exc}") from exc
        self._publish(collection)

    def _snapshot(
        self,
        collection: str,
        filters: Mapping[str, Any],
        options: QueryOptions,
    ) -> list[Document]:
        model = self._model(collection)
        stmt = select(model).where(*self._criteria(model, filters))
        if options.order_by:
            column = self._column(model, options.order_by)
            stmt = stmt.order_by(column.desc() if options.descending else column.asc())
        # Secondary key keeps ordering stable when timestamps tie.
        stmt = stmt.order_by(self._column(model, "id").asc())
        if options.limit is not None:
            stmt = stmt.limit(options.limit)
        stmt = stmt.execution_options(populate_existing=True)
        try:
            rows = self.session.scalars(stmt).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to query {collection}: {exc}") from exc
        return [_to_document(row) for row in rows]

    async def get(self, collection: str, doc_id: str) -> Document | None:
        documents = self._snapshot(collection, {"id": doc_id}, QueryOptions(limit=1))
        return documents[0] if documents else None

    async def query(
        self,
        collection: str,
        filters: Filters | None = None,
        options: QueryOptions | None = None,
    ) -> list[Document]:
        return self._snapshot(collection, dict(filters or {}), options or QueryOptions())

    async def count(self, collection: str, filters: Filters | None = None) -> int:
        model = self._model(collection)
        stmt = select(func.count()).select_from(model).where(*self._criteria(model, filters))
        try:
            return int(self.session.scalar(stmt) or 0)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to count {collection}: {exc}") from exc

    async def count_distinct(
        self,
        collection: str,
        field_name: str,
        filters: Filters | None = None,
    ) -> int:
        model = self._model(collection)
        column = self._column(model, field_name)
        stmt = select(func.count(distinct(column))).where(*self._criteria(model, filters))
        try:
            return int(self.session.scalar(stmt) or 0)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to count {collection}: {exc}") from exc

    async def insert(self, collection: str, data: Mapping[str, Any]) -> str:
        model = self._model(collection)
        doc_id = uuid.uuid4().hex
        with self._writing(collection, "insert"):
            self.session.add(model(id=doc_id, **data))
        return doc_id

    async def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        model = self._model(collection)
        with self._writing(collection, "set"):
            existing = self.session.get(model, doc_id)
            if existing is None:
                self.session.add(model(id=doc_id, **data))
            else:
                for name, value in data.items():
                    self._column(model, name)
                    setattr(existing, name, value)

    async def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> bool:
        model = self._model(collection)
        values: dict[str, Any] = {}
        for name, value in fields.items():
            column = self._column(model, name)
            if isinstance(value, Increment):
                expr = column + value.delta
                if value.floor is not None:
                    expr = case((expr < value.floor, value.floor), else_=expr)
                values[name] = expr
            else:
                values[name] = value
        stmt = (
            update(model)
            .where(self._column(model, "id") == doc_id)
            .values(values)
            .execution_options(synchronize_session="fetch")
        )
        with self._writing(collection, "update"):
            result = self.session.execute(stmt)
            updated = bool(result.rowcount)
        return updated

    async def delete(self, collection: str, doc_id: str) -> bool:
        return await self.delete_where(collection, {"id": doc_id}) > 0

    async def delete_where(self, collection: str, filters: Filters) -> int:
        if not filters:
            raise StoreError(f"Refusing unfiltered delete on {collection}")
        model = self._model(collection)
        stmt = (
            delete(model)
            .where(*self._criteria(model, filters))
            .execution_options(synchronize_session="fetch")
        )
        with self._writing(collection, "delete"):
            result = self.session.execute(stmt)
            removed = int(result.rowcount or 0)
        return removed
