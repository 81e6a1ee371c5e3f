"""System and transparency endpoints for the Storybook Rank API."""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy import func

from storybook_rank.api.v1.dependencies import SessionDep
from storybook_rank.core.settings import settings
from storybook_rank.models import ReadCountTask
from storybook_rank.services.ranking import AGE_BONUS_FALLBACK, AGE_BONUS_TIERS

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of the ranking configuration.

    Excludes secrets and connection strings.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
        },
        "ranking": {
            **settings.ranking_config,
            "age_bonus": {
                "tiers": [{"max_age_days": days, "bonus": bonus} for days, bonus in AGE_BONUS_TIERS],
                "fallback": AGE_BONUS_FALLBACK,
            },
        },
        "throttle": {
            "read_seconds": settings.read_throttle_seconds,
            "unique_for_seconds": settings.read_unique_for_seconds,
        },
        "queue": {
            "sync": settings.read_queue_sync,
            "dispatch_delay_seconds": settings.read_dispatch_delay_seconds,
            "max_attempts": settings.read_queue_max_attempts,
        },
    }


@router.get("/queue")
async def get_queue_stats(db: SessionDep) -> dict[str, int]:
    """Return the number of read-count tasks in each status."""
    rows = (
        db.query(ReadCountTask.status, func.count(ReadCountTask.id))
        .group_by(ReadCountTask.status)
        .all()
    )
    return {status: int(count) for status, count in rows}
