"""Apply one rank-aware read-count increment to a book, page or song.

Runs inside the read-count task worker, never inline with the request that
recorded the view. Each call re-reads the entity and a fresh ranking
snapshot, computes the delta and commits a single UPDATE.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storybook_rank.repositories.scored_store import ScoredRecordStore
from storybook_rank.services.kinds import EntityKind
from storybook_rank.services.markers import (
    MarkerStore,
    get_marker_store,
    release_quietly,
)
from storybook_rank.services.ranking import (
    RankingConfig,
    book_page_config,
    ranked_increment,
    song_config,
)

logger = logging.getLogger(__name__)


class IncrementOutcome(str, Enum):
    """How a single increment attempt ended."""

    APPLIED = "applied"
    FROZEN = "frozen"  # ranked among the leaders; nothing added
    DUPLICATE = "duplicate"  # dedup marker already present
    NOT_FOUND = "not_found"  # entity deleted before the task ran


@dataclass(frozen=True)
class IncrementResult:
    """Outcome and applied delta of an increment attempt."""

    kind: EntityKind
    entity_id: int
    outcome: IncrementOutcome
    delta: float = 0.0


def default_configs() -> dict[EntityKind, RankingConfig]:
    """Return the configured ranking rules for every kind."""
    shared = book_page_config()
    return {
        EntityKind.BOOK: shared,
        EntityKind.PAGE: shared,
        EntityKind.SONG: song_config(),
    }


def dedup_key(kind: EntityKind, entity_id: int) -> str:
    """Return the cache key of the per-entity dedup marker."""
    return f"{kind.value}_read_count_job_{entity_id}"


class ReadCountIncrementer:
    """Apply read-count increments using the rank tiers of each kind."""

    def __init__(
        self,
        db: Session,
        markers: MarkerStore | None = None,
        configs: Mapping[EntityKind, RankingConfig] | None = None,
    ) -> None:
        self.db = db
        self.markers = markers if markers is not None else get_marker_store()
        self.configs = dict(configs) if configs is not None else default_configs()

    def increment(
        self,
        kind: EntityKind | str,
        entity_id: int,
        now: datetime | None = None,
        on_result: Callable[[IncrementResult], None] | None = None,
    ) -> IncrementResult:
        """Apply one read of ``entity_id`` and commit it.

        ``on_result`` runs inside the same transaction as the increment, so a
        caller can record bookkeeping (e.g. a task row) atomically with it.
        Storage errors roll the session back and propagate so the task queue
        can retry; a dedup marker taken by the failed attempt is released.
        """
        kind = EntityKind.parse(kind)
        config = self.configs[kind]

        marker: str | None = None
        duplicate = False
        if config.dedup_ttl_seconds:
            key = dedup_key(kind, entity_id)
            if self.markers.set_if_absent(key, config.dedup_ttl_seconds):
                marker = key
            else:
                logger.info("Skipping %s %s read: already counted recently", kind.value, entity_id)
                duplicate = True

        try:
            if duplicate:
                result = IncrementResult(kind, entity_id, IncrementOutcome.DUPLICATE)
            else:
                result = self._apply(kind, entity_id, config, now)
            if on_result is not None:
                on_result(result)
            self.db.commit()
        except (SQLAlchemyError, OSError):
            self.db.rollback()
            if marker is not None:
                release_quietly(self.markers, marker)
            raise

        logger.debug(
            "Read of %s %s: %s (+%s)", kind.value, entity_id, result.outcome.value, result.delta
        )
        return result

    def _apply(
        self,
        kind: EntityKind,
        entity_id: int,
        config: RankingConfig,
        now: datetime | None,
    ) -> IncrementResult:
        store = ScoredRecordStore(self.db, kind.model)
        entity = store.get(entity_id)
        if entity is None:
            logger.info("Skipping %s %s read: entity no longer exists", kind.value, entity_id)
            return IncrementResult(kind, entity_id, IncrementOutcome.NOT_FOUND)

        delta = ranked_increment(entity, store, config, now)
        if delta == 0.0:
            return IncrementResult(kind, entity_id, IncrementOutcome.FROZEN)

        if config.atomic:
            store.increment_atomic(entity_id, delta)
        else:
            old_score = float(entity.read_count or 0.0)
            store.update(entity_id, {"read_count": old_score + delta})
        return IncrementResult(kind, entity_id, IncrementOutcome.APPLIED, delta)
