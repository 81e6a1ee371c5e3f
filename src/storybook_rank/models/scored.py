# src/storybook_rank/models/scored.py
"""Columns shared by every entity that carries a read-count score."""

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer
from sqlalchemy.orm import Mapped, mapped_column

from storybook_rank.db.time import utcnow


class ScoredMixin:
    """Identifier, read-count score and creation time.

    ``read_count`` only ever grows through the read-count incrementer.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    read_count: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, index=True)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=utcnow,
    )
