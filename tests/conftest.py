# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")

from mindhaven.db.session import Base  # noqa: E402
from mindhaven.db.session import get_db as app_get_session  # noqa: E402
from mindhaven.main import app as fastapi_app  # noqa: E402
from mindhaven.services.identity import Identity, IdentityProvider  # noqa: E402
from mindhaven.services.membership import CommunityDetails, MembershipManager  # noqa: E402
from mindhaven.services.notifications import StoreNotificationHook  # noqa: E402
from mindhaven.store import SqlDocumentStore  # noqa: E402

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    # The store commits after every write, so rows are removed after each test
    # instead of rolling back an enclosing transaction.
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def store(db_session: Session) -> SqlDocumentStore:
    return SqlDocumentStore(db_session)


@pytest.fixture()
def manager(store: SqlDocumentStore) -> MembershipManager:
    return MembershipManager(store, StoreNotificationHook(store))


@pytest.fixture()
def alice() -> Identity:
    return Identity(user_id="user-alice", display_name="Alice", photo_url="https://img/alice.png")


@pytest.fixture()
def bob() -> Identity:
    return Identity(user_id="user-bob", display_name="Bob")


@pytest.fixture()
def carol() -> Identity:
    return Identity(user_id="user-carol", display_name="Carol")


def _auth_headers(identity: Identity) -> dict[str, str]:
    return {"Authorization": f"Bearer {IdentityProvider().issue(identity)}"}


@pytest.fixture()
def alice_headers(alice: Identity) -> dict[str, str]:
    """Return authorization headers for the community creator."""
    return _auth_headers(alice)


@pytest.fixture()
def bob_headers(bob: Identity) -> dict[str, str]:
    return _auth_headers(bob)


@pytest.fixture()
def carol_headers(carol: Identity) -> dict[str, str]:
    return _auth_headers(carol)


@pytest.fixture()
def details() -> CommunityDetails:
    """Valid details for a new community."""
    return CommunityDetails(
        name="Calm Corner",
        description="A quiet place to share what helps you unwind.",
        tags=["calm", "support"],
        rules=["Be kind"],
    )
