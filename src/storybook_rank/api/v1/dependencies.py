"""Shared API dependencies and helpers for the scored-entity endpoints."""

import logging
from typing import Annotated, TypeVar

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storybook_rank.db.session import get_db
from storybook_rank.models.scored import ScoredMixin
from storybook_rank.services.kinds import EntityKind
from storybook_rank.services.markers import MarkerStore, get_marker_store, release_quietly
from storybook_rank.services.popularity import PopularityService
from storybook_rank.services.read_throttle import Actor, resolve_actor, should_count, throttle_key
from storybook_rank.services.task_queue import ReadCountQueue

logger = logging.getLogger(__name__)

ScoredT = TypeVar("ScoredT", bound=ScoredMixin)


def get_marker_store_dep() -> MarkerStore:
    """Return the shared expiring marker store."""
    return get_marker_store()


def get_actor(request: Request) -> Actor:
    """Return the throttling identity of the caller."""
    return resolve_actor(request)


# Type aliases for common dependencies
SessionDep = Annotated[Session, Depends(get_db)]
MarkerStoreDep = Annotated[MarkerStore, Depends(get_marker_store_dep)]
ActorDep = Annotated[Actor, Depends(get_actor)]


def get_entity_or_404(db: Session, model: type[ScoredT], entity_id: int) -> ScoredT:
    """Load a scored entity or raise a 404.

    Raises:
        HTTPException: If no entity with ``entity_id`` exists
    """
    entity = db.get(model, entity_id)
    if entity is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{model.__name__} not found",
        )
    return entity


def record_read(
    db: Session,
    markers: MarkerStore,
    kind: EntityKind,
    entity_id: int,
    actor: Actor,
    *,
    throttle: bool = True,
) -> bool:
    """Schedule one read of an entity on behalf of ``actor``.

    Editors are never counted. With ``throttle`` the actor counts at most
    once per throttle window. A read that cannot be queued is logged and
    reported as not counted; the caller never sees the storage error.
    """
    if actor.is_editor:
        return False
    if throttle and not should_count(markers, kind, entity_id, actor):
        return False
    try:
        return ReadCountQueue(db, markers).dispatch(kind, entity_id)
    except SQLAlchemyError:
        logger.error("Could not queue %s %s read", kind.value, entity_id, exc_info=True)
        if throttle:
            release_quietly(markers, throttle_key(kind, entity_id, actor.fingerprint))
        return False


def top_by_read_count(
    db: Session,
    model: type[ScoredT],
    limit: int,
) -> list[ScoredT]:
    """Return the most-read entities of a kind with popularity attached."""
    items = (
        db.query(model)
        .order_by(model.read_count.desc(), model.created_at.desc(), model.id)
        .limit(limit)
        .all()
    )
    PopularityService(db).add_popularity_to_collection(items, model)
    return items


def popularity_of(db: Session, kind: EntityKind, entity_id: int) -> dict[str, object]:
    """Return the percentile rank payload of a single entity."""
    entity = get_entity_or_404(db, kind.model, entity_id)
    return {
        "kind": kind.value,
        "id": entity.id,
        "read_count": float(entity.read_count or 0.0),
        "popularity_percentage": PopularityService(db).calculate_popularity(entity),
    }
