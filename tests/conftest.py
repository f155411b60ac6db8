# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from huddle.core.security import create_access_token  # noqa: E402
from huddle.db.session import Base  # noqa: E402
from huddle.db.session import get_db as app_get_session  # noqa: E402
from huddle.main import app as fastapi_app  # noqa: E402
from huddle.models import User  # noqa: E402
from huddle.realtime import PresenceRouter  # noqa: E402

from tests.fakes import InMemoryMessageStore, StaticVerifier  # noqa: E402

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
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker[Session]]:
    """Independent engine for code that opens and closes its own sessions."""
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    finally:
        engine.dispose()


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


def _make_user(db_session: Session, username: str, nickname: str) -> User:
    user = User(username=username, nickname=nickname)
    db_session.add(user)
    db_session.flush()
    db_session.refresh(user)
    return user


@pytest.fixture()
def alice(db_session: Session) -> User:
    return _make_user(db_session, "alice", "Alice")


@pytest.fixture()
def bob(db_session: Session) -> User:
    return _make_user(db_session, "bob", "Bob")


@pytest.fixture()
def carol(db_session: Session) -> User:
    return _make_user(db_session, "carol", "Carol")


@pytest.fixture()
def alice_headers(alice: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(alice.id)}"}


@pytest.fixture()
def bob_headers(bob: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(bob.id)}"}


@pytest.fixture()
def store() -> InMemoryMessageStore:
    return InMemoryMessageStore()


@pytest.fixture()
def verifier() -> StaticVerifier:
    return StaticVerifier({"token-u1": "U1", "token-u2": "U2", "token-u3": "U3"})


@pytest.fixture()
def presence(verifier: StaticVerifier, store: InMemoryMessageStore) -> PresenceRouter:
    return PresenceRouter(verifier, store, handshake_timeout=1.0, max_pending=32)
