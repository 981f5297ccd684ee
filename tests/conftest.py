# tests/conftest.py
from __future__ import annotations

from collections.abc import Generator, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from whisper_echo.core.security import create_access_token
from whisper_echo.db.session import Base
from whisper_echo.db.session import get_db as app_get_session
from whisper_echo.db.session import get_session_factory as app_get_session_factory
from whisper_echo.main import app as fastapi_app
from whisper_echo.models import Post, User

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
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
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

    # Short-lived sessions share the test connection inside their own savepoint.
    scoped_factory = sessionmaker(
        bind=db_session.get_bind(),
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[app_get_session_factory] = lambda: scoped_factory
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(app_get_session_factory, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    # Entering the context runs startup, which builds the realtime hub.
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def make_user(db_session: Session, username: str, **fields) -> User:
    """Persist and return a user with the given username."""
    user = User(username=username, **fields)
    db_session.add(user)
    db_session.flush()
    db_session.refresh(user)
    return user


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def test_user(db_session: Session) -> Iterator[User]:
    """Create and return the primary test user."""
    yield make_user(db_session, "test_user")


@pytest.fixture()
def other_user(db_session: Session) -> Iterator[User]:
    """Create and return a second persisted user."""
    yield make_user(db_session, "other_user")


@pytest.fixture()
def third_user(db_session: Session) -> Iterator[User]:
    yield make_user(db_session, "third_user")


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return bearer(test_user)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return bearer(other_user)


@pytest.fixture()
def third_auth_token(third_user: User) -> dict[str, str]:
    return bearer(third_user)


@pytest.fixture()
def test_post(db_session: Session, other_user: User) -> Iterator[Post]:
    """A post authored by ``other_user`` so ``test_user`` can react to it."""
    post = Post(
        author_id=other_user.id,
        text="Test post content",
        media=[],
        category="Technology",
        tags=["testing"],
    )
    db_session.add(post)
    db_session.flush()
    db_session.refresh(post)
    yield post
