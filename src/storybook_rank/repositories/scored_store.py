"""Record store for entities ranked by ``read_count``."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from storybook_rank.models.scored import ScoredMixin

ScoredT = TypeVar("ScoredT", bound=ScoredMixin)


class ScoredRecordStore(Generic[ScoredT]):
    """Read, count, rank and update one kind of scored entity.

    Writes are flushed but not committed; the caller owns the transaction.
    """

    def __init__(self, session: Session, model: type[ScoredT]) -> None:
        self.session = session
        self.model = model

    def get(self, entity_id: int) -> ScoredT | None:
        """Return the freshly loaded entity, or None if it no longer exists."""
        return self.session.get(self.model, entity_id, populate_existing=True)

    def count(self) -> int:
        """Return the number of entities of this kind."""
        return int(self.session.scalar(select(func.count()).select_from(self.model)) or 0)

    def count_below(self, read_count: float) -> int:
        """Return how many entities have a ``read_count`` strictly below the value."""
        stmt = (
            select(func.count())
            .select_from(self.model)
            .where(self.model.read_count < read_count)
        )
        return int(self.session.scalar(stmt) or 0)

    def top_ids(self, limit: int) -> list[int]:
        """Return ids of the ``limit`` highest-scored entities, best first.

        Ties are broken by id so the snapshot is deterministic.
        """
        stmt = (
            select(self.model.id)
            .order_by(self.model.read_count.desc(), self.model.id)
            .limit(limit)
        )
        return list(self.session.scalars(stmt))

    def all_read_counts(self) -> list[float]:
        """Return every ``read_count`` of this kind in ascending order."""
        stmt = select(self.model.read_count).order_by(self.model.read_count)
        return [float(value or 0.0) for value in self.session.scalars(stmt)]

    def increment_atomic(self, entity_id: int, delta: float) -> None:
        """Add ``delta`` to the stored ``read_count`` in a single UPDATE."""
        stmt = (
            update(self.model)
            .where(self.model.id == entity_id)
            .values(read_count=func.coalesce(self.model.read_count, 0.0) + delta)
            .execution_options(synchronize_session=False)
        )
        self.session.execute(stmt)
        self.session.flush()

    def update(self, entity_id: int, fields: Mapping[str, Any]) -> None:
        """Overwrite the given columns of one entity."""
        stmt = (
            update(self.model)
            .where(self.model.id == entity_id)
            .values(**dict(fields))
            .execution_options(synchronize_session=False)
        )
        self.session.execute(stmt)
        self.session.flush()
