"""Percentile popularity of scored entities relative to their own kind."""

from __future__ import annotations

import math
from bisect import bisect_left
from collections.abc import Sequence
from typing import TypeVar

from sqlalchemy.orm import Session

from storybook_rank.models.scored import ScoredMixin
from storybook_rank.repositories.scored_store import ScoredRecordStore

ItemT = TypeVar("ItemT")


def _percentile(lower: int, total: int) -> int:
    """Return ``round(100 * lower / (total - 1))`` with halves rounded up.

    Clamped to 100 for a stale entity scored above the stored population.
    """
    return min(100, int(math.floor(100 * lower / (total - 1) + 0.5)))


def _read_count_of(item: object) -> float:
    return float(getattr(item, "read_count", None) or 0.0)


class PopularityService:
    """Convert raw read counts into 0-100 percentiles.

    An entity's percentile is the share of the *other* entities of its kind
    with a strictly lower read count, so ties never inflate each other.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def calculate_popularity(self, entity: ScoredMixin) -> int:
        """Return the percentile rank of a single entity within its kind."""
        store = ScoredRecordStore(self.db, type(entity))
        total = store.count()
        if total == 0:
            return 0
        if total == 1:
            return 100

        lower = store.count_below(_read_count_of(entity))
        return _percentile(lower, total)

    def add_popularity_to_collection(
        self,
        collection: Sequence[ItemT],
        model: type[ScoredMixin],
    ) -> Sequence[ItemT]:
        """Attach ``popularity_percentage`` to every item of a rendered list.

        Percentiles are computed against the whole population of ``model``,
        not just the items passed in. The population is loaded once and each
        item is placed with a binary search. The attribute is set on the
        Python objects only; nothing is persisted.
        """
        if not collection:
            return collection

        store = ScoredRecordStore(self.db, model)
        total = store.count()
        if total == 0:
            for item in collection:
                item.popularity_percentage = 0  # type: ignore[attr-defined]
            return collection
        if total == 1:
            for item in collection:
                item.popularity_percentage = 100  # type: ignore[attr-defined]
            return collection

        all_counts = store.all_read_counts()
        for item in collection:
            lower = bisect_left(all_counts, _read_count_of(item))
            item.popularity_percentage = _percentile(lower, total)  # type: ignore[attr-defined]
        return collection
