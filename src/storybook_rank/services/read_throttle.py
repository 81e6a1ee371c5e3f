"""Per-actor throttling of recorded views.

A viewer refreshing a book or page should count once per window, not once
per refresh. Actors are identified by bearer token subject, then session
cookie, then client address.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import redis
from blake3 import blake3
from fastapi import Request
from jose import JWTError, jwt

from storybook_rank.core.settings import settings
from storybook_rank.services.kinds import EntityKind
from storybook_rank.services.markers import MarkerStore

logger = logging.getLogger(__name__)

# Permission carried by site editors; their views never count.
EDIT_PROFILE_PERMISSION = "edit profile"


@dataclass(frozen=True)
class Actor:
    """Who triggered a view, as far as throttling is concerned."""

    fingerprint: str
    is_editor: bool = False


def _bearer_claims(request: Request) -> dict[str, object] | None:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        logger.debug("Ignoring invalid bearer token for read throttling")
        return None


def resolve_actor(request: Request) -> Actor:
    """Build the throttling identity of the caller.

    Prefers the authenticated subject, then the session cookie, then the
    client IP address.
    """
    claims = _bearer_claims(request)
    if claims and claims.get("sub"):
        permissions = claims.get("permissions") or []
        is_editor = isinstance(permissions, list) and EDIT_PROFILE_PERMISSION in permissions
        return Actor(fingerprint=f"user:{claims['sub']}", is_editor=is_editor)

    session_id = request.cookies.get(settings.session_cookie_name)
    if session_id:
        return Actor(fingerprint=f"session:{session_id}")

    host = request.client.host if request.client else "unknown"
    return Actor(fingerprint=f"ip:{host}")


def throttle_key(kind: EntityKind, entity_id: int, fingerprint: str) -> str:
    """Return ``reads:{kind}:{id}:{hash}`` for one actor and entity."""
    digest = blake3(fingerprint.encode("utf-8")).hexdigest()
    return f"reads:{kind.value}:{entity_id}:{digest}"


def should_count(
    markers: MarkerStore,
    kind: EntityKind,
    entity_id: int,
    actor: Actor,
) -> bool:
    """Return True if this actor's view starts a new throttle window.

    An unavailable cache counts nothing rather than letting every refresh
    through.
    """
    if actor.is_editor:
        return False
    try:
        return markers.set_if_absent(
            throttle_key(kind, entity_id, actor.fingerprint),
            settings.read_throttle_seconds,
        )
    except redis.RedisError as e:
        logger.warning("Read throttle cache unavailable, not counting view: %s", e)
        return False
