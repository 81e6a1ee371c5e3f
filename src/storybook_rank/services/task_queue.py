"""Durable queue of read-count increments and its background worker.

Request handlers call :meth:`ReadCountQueue.dispatch` and return at once; the
increment itself happens later in :class:`ReadCountWorker`. Tasks live in the
``read_count_task`` table so they survive restarts, and delivery is
at-least-once: a task stays pending until its increment commits, and a
drainer claims a row in that same transaction so no task is applied twice.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

import redis
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storybook_rank.core.settings import settings
from storybook_rank.db.session import SessionLocal
from storybook_rank.db.time import utcnow
from storybook_rank.models import ReadCountTask
from storybook_rank.models.read_task import (
    TASK_STATUS_DONE,
    TASK_STATUS_FAILED,
    TASK_STATUS_PENDING,
    TASK_STATUS_RUNNING,
)
from storybook_rank.services.kinds import EntityKind, UnknownEntityKindError
from storybook_rank.services.markers import (
    MarkerStore,
    get_marker_store,
    release_quietly,
)
from storybook_rank.services.read_count import IncrementResult, ReadCountIncrementer

# Configure logger for this module
logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (SQLAlchemyError, redis.RedisError, OSError)
MAX_ERROR_LENGTH = 500

# Kinds with at most one waiting task per entity, for up to
# ``read_unique_for_seconds``.
UNIQUE_KINDS = frozenset({EntityKind.BOOK, EntityKind.PAGE})


def unique_key(kind: EntityKind, entity_id: int) -> str:
    """Return the marker key that keeps a book or page task unique."""
    return f"increment_{kind.value}_read_count_{entity_id}"


def retry_delay(attempts: int) -> timedelta:
    """Return the exponential backoff before the next attempt."""
    base = max(1, settings.read_queue_backoff_seconds)
    seconds = min(base * 2 ** max(0, attempts - 1), settings.read_queue_max_backoff_seconds)
    return timedelta(seconds=seconds)


class ReadCountQueue:
    """Enqueue read-count increments on behalf of request handlers."""

    def __init__(self, db: Session, markers: MarkerStore | None = None) -> None:
        self.db = db
        self.markers = markers if markers is not None else get_marker_store()

    def dispatch(self, kind: EntityKind | str, entity_id: int) -> bool:
        """Schedule one read of an entity.

        Returns False when an identical book or page task is still waiting
        to run. The uniqueness marker is released once that task finishes.

        Raises:
            SQLAlchemyError: If the task cannot be stored
        """
        kind = EntityKind.parse(kind)
        if kind in UNIQUE_KINDS and not self.markers.set_if_absent(
            unique_key(kind, entity_id), settings.read_unique_for_seconds
        ):
            logger.debug("Dropping duplicate %s %s read task", kind.value, entity_id)
            return False

        if settings.read_queue_sync:
            self._run_inline(kind, entity_id)
            return True

        try:
            self.enqueue(kind, entity_id)
        except SQLAlchemyError:
            release_unique(self.markers, kind, entity_id)
            raise
        return True

    def enqueue(
        self,
        kind: EntityKind | str,
        entity_id: int,
        delay_seconds: int | None = None,
    ) -> ReadCountTask:
        """Persist a pending task, due after a short delay to absorb refresh bursts."""
        kind = EntityKind.parse(kind)
        if delay_seconds is None:
            delay_seconds = settings.read_dispatch_delay_seconds
        task = ReadCountTask(
            kind=kind.value,
            entity_id=entity_id,
            status=TASK_STATUS_PENDING,
            attempts=0,
            available_at=utcnow() + timedelta(seconds=max(0, delay_seconds)),
        )
        self.db.add(task)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.debug("Queued %s %s read as task %s", kind.value, entity_id, task.id)
        return task

    def _run_inline(self, kind: EntityKind, entity_id: int) -> None:
        try:
            ReadCountIncrementer(self.db, self.markers).increment(kind, entity_id)
        except RETRYABLE_ERRORS:
            # Inline mode has no retry; the view is lost but the request succeeds.
            logger.error("Inline %s %s read failed", kind.value, entity_id, exc_info=True)
        finally:
            release_unique(self.markers, kind, entity_id)


def release_unique(markers: MarkerStore, kind: EntityKind | str, entity_id: int) -> None:
    """Allow a new book or page task once the previous one is finished."""
    try:
        kind = EntityKind.parse(kind)
    except UnknownEntityKindError:
        return
    if kind in UNIQUE_KINDS:
        release_quietly(markers, unique_key(kind, entity_id))


def due_task_ids(db: Session, now: datetime, limit: int) -> list[int]:
    """Return ids of up to ``limit`` pending tasks that are due, oldest first."""
    stmt = (
        select(ReadCountTask.id)
        .where(
            ReadCountTask.status == TASK_STATUS_PENDING,
            ReadCountTask.available_at <= now,
        )
        .order_by(ReadCountTask.id)
        .limit(limit)
    )
    return list(db.scalars(stmt))


def _claim(db: Session, task_id: int, now: datetime) -> bool:
    # The claim is committed together with the increment, so a concurrent
    # drainer either blocks on the row or finds it no longer pending.
    result = db.execute(
        update(ReadCountTask)
        .where(
            ReadCountTask.id == task_id,
            ReadCountTask.status == TASK_STATUS_PENDING,
            ReadCountTask.available_at <= now,
        )
        .values(status=TASK_STATUS_RUNNING)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def run_task(
    db: Session,
    task_id: int,
    incrementer: ReadCountIncrementer,
    now: datetime,
) -> bool:
    """Claim and apply one task.

    Returns:
        False if another drainer already took the task.
    """
    if not _claim(db, task_id, now):
        db.rollback()
        logger.debug("Read-count task %s already claimed", task_id)
        return False

    task = db.get(ReadCountTask, task_id, populate_existing=True)
    kind, entity_id = task.kind, task.entity_id
    try:
        incrementer.increment(kind, entity_id, now=now, on_result=_mark_done(task))
    except UnknownEntityKindError as e:
        db.rollback()
        _finish_failed(db, task_id, e)
        return True
    except RETRYABLE_ERRORS as e:
        db.rollback()
        if _record_failure(db, task_id, e, now):
            release_unique(incrementer.markers, kind, entity_id)
        return True

    release_unique(incrementer.markers, kind, entity_id)
    return True


def process_pending(
    db: Session,
    markers: MarkerStore | None = None,
    batch_size: int | None = None,
    now: datetime | None = None,
) -> int:
    """Run up to ``batch_size`` due tasks in queue order.

    Returns:
        The number of tasks this call claimed.
    """
    now = now or utcnow()
    task_ids = due_task_ids(db, now, batch_size or settings.read_queue_batch_size)
    logger.debug("Found %d due read-count tasks", len(task_ids))

    incrementer = ReadCountIncrementer(db, markers)
    return sum(run_task(db, task_id, incrementer, now) for task_id in task_ids)


def _mark_done(task: ReadCountTask) -> Callable[[IncrementResult], None]:
    def _apply(result: IncrementResult) -> None:
        task.status = TASK_STATUS_DONE
        task.outcome = result.outcome.value
        task.attempts += 1
        task.last_error = None

    return _apply


def _finish_failed(db: Session, task_id: int, error: Exception) -> None:
    task = db.get(ReadCountTask, task_id)
    if task is None:  # pragma: no cover - deleted concurrently
        return
    task.status = TASK_STATUS_FAILED
    task.last_error = str(error)[:MAX_ERROR_LENGTH]
    db.commit()
    logger.error("Read-count task %s cannot run: %s", task_id, error)


def _record_failure(db: Session, task_id: int, error: Exception, now: datetime) -> bool:
    """Count a failed attempt; return True once the task has given up."""
    task = db.get(ReadCountTask, task_id)
    if task is None:  # pragma: no cover - deleted concurrently
        return True
    task.attempts += 1
    task.last_error = str(error)[:MAX_ERROR_LENGTH]
    exhausted = task.attempts >= settings.read_queue_max_attempts
    if exhausted:
        task.status = TASK_STATUS_FAILED
        logger.error(
            "Read-count task %s (%s %s) failed after %d attempts",
            task_id,
            task.kind,
            task.entity_id,
            task.attempts,
            exc_info=error,
        )
    else:
        task.available_at = now + retry_delay(task.attempts)
        logger.warning(
            "Read-count task %s (%s %s) attempt %d failed, retrying: %s",
            task_id,
            task.kind,
            task.entity_id,
            task.attempts,
            error,
        )
    db.commit()
    return exhausted


class ReadCountWorker:
    """Periodically drains due read-count tasks in a background thread.

    Each pass opens its own session, so the worker can share a process with
    the web application or run standalone.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        markers: MarkerStore | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.markers = markers
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background drain loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background drain loop after the current pass."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    def drain_once(self) -> int:
        """Run one batch of due tasks and return how many were attempted."""
        with self.session_factory() as db:
            return process_pending(db, self.markers)

    async def _run(self) -> None:
        interval = max(0.1, float(settings.read_queue_poll_interval_seconds))

        while not self._stopping.is_set():
            try:
                processed = await asyncio.to_thread(self.drain_once)
            except RETRYABLE_ERRORS as e:
                logger.warning("ReadCountWorker could not reach storage: %s", e)
                await self._sleep(min(interval * 4, 30.0))
                continue

            # A full batch means more work is probably waiting.
            if processed < settings.read_queue_batch_size:
                await self._sleep(interval)

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except TimeoutError:
            pass
