# tests/conftest.py
from __future__ import annotations

import os
import tempfile
from collections.abc import Callable, Generator, Iterator

import pytest

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("SECRET_KEY", "parley-test-secret")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MEDIA_ROOT", tempfile.mkdtemp(prefix="parley-media-"))

from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from parley_stage.api.v1.dependencies import get_store  # noqa: E402
from parley_stage.core.security import create_access_token, hash_password  # noqa: E402
from parley_stage.core.settings import Settings  # noqa: E402
from parley_stage.db.session import Base  # noqa: E402
from parley_stage.db.session import get_db as app_get_session  # noqa: E402
from parley_stage.main import app as fastapi_app  # noqa: E402
from parley_stage.models import User  # noqa: E402
from parley_stage.services.message_store import MessageStore  # noqa: E402
from parley_stage.services.unread import UnreadCounter  # noqa: E402
from parley_stage.store import InMemoryKeyValueStore  # noqa: E402

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "correct-horse"


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

        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def kv_store() -> InMemoryKeyValueStore:
    """Fresh chat store per test."""
    return InMemoryKeyValueStore()


@pytest.fixture()
def unread(kv_store: InMemoryKeyValueStore) -> UnreadCounter:
    return UnreadCounter(kv_store)


@pytest.fixture()
def message_store(kv_store: InMemoryKeyValueStore, unread: UnreadCounter) -> MessageStore:
    return MessageStore(kv_store, unread, retry_base_delay=0)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI, db_session: Session, kv_store: InMemoryKeyValueStore
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_store] = lambda: kv_store
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_store, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return Settings()


@pytest.fixture()
def user_password() -> str:
    """Password shared by accounts built with `make_user`."""
    return TEST_PASSWORD


@pytest.fixture(scope="session")
def password_hash() -> str:
    # bcrypt is deliberately slow; hash once per run.
    return hash_password(TEST_PASSWORD)


@pytest.fixture()
def make_user(db_session: Session, password_hash: str) -> Callable[..., User]:
    """Factory inserting an account with the shared test password."""

    def _make_user(username: str, **profile: str) -> User:
        user = User(username=username, password_hash=password_hash, **profile)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def alice(make_user: Callable[..., User]) -> User:
    return make_user("alice")


@pytest.fixture()
def bob(make_user: Callable[..., User]) -> User:
    return make_user("bob")


@pytest.fixture()
def carol(make_user: Callable[..., User]) -> User:
    return make_user("carol")


def auth_headers_for(username: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(username)}"}


@pytest.fixture()
def alice_headers(alice: User) -> dict[str, str]:
    return auth_headers_for(alice.username)


@pytest.fixture()
def bob_headers(bob: User) -> dict[str, str]:
    return auth_headers_for(bob.username)


@pytest.fixture()
def carol_headers(carol: User) -> dict[str, str]:
    return auth_headers_for(carol.username)
