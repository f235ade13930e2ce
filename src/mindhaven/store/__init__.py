# src/mindhaven/store/__init__.py
"""Document store interface and implementations."""

from mindhaven.core.errors import StoreError

from .base import Document, DocumentStore, Increment, QueryOptions, Subscription
from .sql import SqlDocumentStore

__all__ = [
    "Document",
    "DocumentStore",
    "Increment",
    "QueryOptions",
    "SqlDocumentStore",
    "StoreError",
    "Subscription",
]
