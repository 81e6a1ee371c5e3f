"""Expiring check-and-set markers backed by Redis or an in-process cache.

Markers suppress duplicate work for a short window: song dedup, per-actor
read throttling and enqueue uniqueness all take one with
``set_if_absent`` and proceed only when it was newly created.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from threading import Lock
from typing import Protocol

import redis

from storybook_rank.core.settings import settings

logger = logging.getLogger(__name__)


class MarkerStore(Protocol):
    """Shared key-value store with atomic create-if-absent and expiry."""

    def set_if_absent(self, key: str, ttl_seconds: int) -> bool:
        """Create ``key`` for ``ttl_seconds``; return False if it already exists."""
        ...

    def release(self, key: str) -> None:
        """Delete ``key`` ahead of its expiry."""
        ...


class RedisMarkerStore:
    """Markers stored as Redis keys set with ``SET NX EX``."""

    def __init__(self, client: redis.Redis | None = None) -> None:
        self._redis = client if client is not None else redis.from_url(settings.redis_url)

    def set_if_absent(self, key: str, ttl_seconds: int) -> bool:
        # SET NX EX is a single round trip, so two workers can never both win.
        return bool(self._redis.set(key, "1", nx=True, ex=int(ttl_seconds)))

    def release(self, key: str) -> None:
        self._redis.delete(key)


class InMemoryMarkerStore:
    """Process-local markers for tests and single-process deployments.

    Only deduplicates within one process; use Redis when several workers
    share the queue.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._expiry: dict[str, float] = {}
        self._lock = Lock()

    def set_if_absent(self, key: str, ttl_seconds: int) -> bool:
        now = self._clock()
        with self._lock:
            expiry = self._expiry.get(key)
            if expiry is not None and expiry > now:
                return False
            self._expiry[key] = now + ttl_seconds
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._expiry.pop(key, None)

    def clear(self) -> None:
        """Forget every marker."""
        with self._lock:
            self._expiry.clear()


_MARKER_STORE: MarkerStore | None = None
_MARKER_STORE_LOCK = Lock()


def get_marker_store() -> MarkerStore:
    """Return the process-wide marker store selected by ``CACHE_BACKEND``."""
    global _MARKER_STORE
    with _MARKER_STORE_LOCK:
        if _MARKER_STORE is None:
            if settings.cache_backend == "memory":
                _MARKER_STORE = InMemoryMarkerStore()
            else:
                _MARKER_STORE = RedisMarkerStore()
            logger.debug("Using %s marker store", type(_MARKER_STORE).__name__)
        return _MARKER_STORE


def set_marker_store(store: MarkerStore | None) -> None:
    """Replace the process-wide marker store; None re-reads the settings."""
    global _MARKER_STORE
    with _MARKER_STORE_LOCK:
        _MARKER_STORE = store


def release_quietly(store: MarkerStore, key: str) -> None:
    """Release ``key``, logging instead of raising when the cache is down.

    Used on error paths where the original failure must propagate.
    """
    try:
        store.release(key)
    except redis.RedisError as e:
        logger.warning("Could not release marker %s: %s", key, e)
