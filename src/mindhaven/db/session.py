"""Engine and session factory for the community store."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from mindhaven.core.settings import settings


class Base(DeclarativeBase):
    """Metadata root for every collection table."""


# Registers the collection tables on Base.metadata for Alembic.
import mindhaven.models  # noqa: E402,F401


def _engine_options(url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"pool_pre_ping": True, "echo": settings.sql_debug}
    if url.startswith("sqlite"):
        # Request handlers and the startup seeder share one SQLite file.
        options["connect_args"] = {"check_same_thread": False}
    return options


engine = create_engine(
    settings.effective_database_url, **_engine_options(settings.effective_database_url)
)

SessionLocal = sessionmaker(bind=engine, autoflush=False)


def get_db() -> Iterator[Session]:
    """Hand one session to a request and close it afterwards."""
    with SessionLocal() as db:
        yield db
