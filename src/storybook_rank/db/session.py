"""Engine and session factory for the read-count store."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from storybook_rank.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for books, pages, songs and queued read tasks."""


# Register the models on Base.metadata for Alembic and create_all.
import storybook_rank.models  # noqa: E402,F401


def _connect_args(url: str) -> dict[str, Any]:
    # The read-count worker opens its sessions from a worker thread.
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.effective_database_url,
    connect_args=_connect_args(settings.effective_database_url),
    pool_pre_ping=True,
    echo=settings.sql_debug,
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session."""
    with SessionLocal() as db:
        yield db
