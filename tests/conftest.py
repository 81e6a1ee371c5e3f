# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta

import pytest

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("READ_WORKER_ENABLED", "false")

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from storybook_rank.api.v1.dependencies import get_marker_store_dep
from storybook_rank.db.session import Base
from storybook_rank.db.session import get_db as app_get_session
from storybook_rank.main import app as fastapi_app
from storybook_rank.models import Book, Page, Song
from storybook_rank.services.markers import InMemoryMarkerStore, set_marker_store

TEST_DB_URL = "sqlite://"

# Fixed "now" used by tests that depend on content age.
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    """Monotonic clock that only moves when a test advances it."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


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
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(engine: Engine, session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def markers(clock: FakeClock) -> Iterator[InMemoryMarkerStore]:
    """In-process marker store driven by the fake clock."""
    store = InMemoryMarkerStore(clock=clock)
    set_marker_store(store)
    try:
        yield store
    finally:
        set_marker_store(None)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI, db_session: Session, markers: InMemoryMarkerStore
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_marker_store_dep] = lambda: markers
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_marker_store_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_book(db_session: Session) -> Callable[..., Book]:
    """Return a factory persisting books with the given score."""
    counter = iter(range(1, 10_000))

    def _make(read_count: float = 0.0, created_at: datetime | None = NOW) -> Book:
        book = Book(title=f"Book {next(counter)}", read_count=read_count, created_at=created_at)
        db_session.add(book)
        db_session.commit()
        return book

    return _make


@pytest.fixture()
def make_page(db_session: Session) -> Callable[..., Page]:
    """Return a factory persisting pages with the given score."""

    def _make(read_count: float = 0.0, created_at: datetime | None = NOW) -> Page:
        page = Page(content="A page", read_count=read_count, created_at=created_at)
        db_session.add(page)
        db_session.commit()
        return page

    return _make


@pytest.fixture()
def make_song(db_session: Session) -> Callable[..., Song]:
    """Return a factory persisting songs with the given score and age."""
    counter = iter(range(1, 10_000))

    def _make(
        read_count: float = 0.0,
        age_days: int | None = 200,
        created_at: datetime | None = None,
    ) -> Song:
        if created_at is None and age_days is not None:
            created_at = NOW - timedelta(days=age_days)
        song = Song(title=f"Song {next(counter)}", read_count=read_count, created_at=created_at)
        db_session.add(song)
        db_session.commit()
        return song

    return _make
