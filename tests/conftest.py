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
os.environ.setdefault("WORKERS_ENABLED", "false")

from scroll_summit.api.v1.dependencies import get_runtime  # noqa: E402
from scroll_summit.core.settings import Settings  # noqa: E402
from scroll_summit.db.session import Base  # noqa: E402
from scroll_summit.db.session import get_db as app_get_session  # noqa: E402
from scroll_summit.main import app as fastapi_app  # noqa: E402
from scroll_summit.services.runtime import WorkerRuntime  # noqa: E402
from scroll_summit.services.state_store import RegionalStateStore  # noqa: E402

TEST_DB_URL = "sqlite://"


class FakeClock:
    """Manually advanced millisecond clock for the regional store."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


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
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    """Session factory handed to the persistence workers under test."""
    factory = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    try:
        yield factory
    finally:
        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(clock: FakeClock) -> RegionalStateStore:
    return RegionalStateStore(clock=clock)


@pytest.fixture()
def test_settings() -> Settings:
    """Settings with pacing disabled so batches can be sent back to back."""
    return Settings(min_batch_interval_ms=0, workers_enabled=False)


@pytest.fixture()
def runtime(
    test_settings: Settings,
    store: RegionalStateStore,
    session_factory: sessionmaker[Session],
) -> WorkerRuntime:
    return WorkerRuntime(test_settings, store=store, session_factory=session_factory)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI, db_session: Session, runtime: WorkerRuntime
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_runtime] = lambda: runtime
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_runtime, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client
