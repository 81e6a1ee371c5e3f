"""Rank-tiered increment rules shared by books, pages and songs.

Every "viewed" or "played" signal adds a delta to an entity's read count.
The delta depends on where the entity currently sits among the top-N of its
kind, and for songs on how old the entity is. Books and pages share one
parameterization; songs supply an age curve in place of a flat bonus.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from storybook_rank.core.settings import Settings, settings
from storybook_rank.db.time import as_utc, utcnow
from storybook_rank.models.scored import ScoredMixin
from storybook_rank.repositories.scored_store import ScoredRecordStore

# (max age in days, bonus); anything older earns the fallback.
AGE_BONUS_TIERS: tuple[tuple[int, float], ...] = (
    (7, 3.0),
    (30, 2.0),
    (60, 1.5),
    (90, 1.2),
)
AGE_BONUS_FALLBACK = 1.0


def age_in_days(created_at: datetime | None, now: datetime | None = None) -> int:
    """Return the whole days elapsed since ``created_at``.

    A missing creation time counts as brand new.
    """
    if created_at is None:
        return 0
    now = as_utc(now) if now is not None else utcnow()
    return max(0, (now - as_utc(created_at)).days)


def age_bonus(age_days: int) -> float:
    """Return the increment earned by an entity of the given age."""
    for max_age, bonus in AGE_BONUS_TIERS:
        if age_days <= max_age:
            return bonus
    return AGE_BONUS_FALLBACK


@dataclass(frozen=True)
class RankingConfig:
    """Parameters of a rank-tiered increment.

    Attributes:
        top_n: Size of the ranking snapshot taken on every increment.
        freeze_top_count: Leading ranks that receive ``freeze_increment``.
        freeze_increment: Delta for the frozen leaders (0 keeps them steady).
        mid_tier_increment: Delta for the rest of the top-N.
        outside_increment: Flat delta for entities outside the top-N.
        age_tier_fn: Maps age in days to a delta; used instead of
            ``outside_increment`` when set.
        cold_start_increment: Delta for a never-read entity, applied without
            taking a ranking snapshot. None disables the shortcut.
        dedup_ttl_seconds: Lifetime of the per-entity dedup marker, or None
            when attempts are not deduplicated.
        atomic: Apply the delta with an in-place UPDATE instead of writing
            back ``old + delta``.
    """

    top_n: int
    freeze_top_count: int = 0
    freeze_increment: float = 0.0
    mid_tier_increment: float = 0.1
    outside_increment: float = 1.0
    age_tier_fn: Callable[[int], float] | None = None
    cold_start_increment: float | None = None
    dedup_ttl_seconds: int | None = None
    atomic: bool = True


def book_page_config(cfg: Settings = settings) -> RankingConfig:
    """Return the ranking rules shared by books and pages."""
    return RankingConfig(
        top_n=cfg.book_page_top_n,
        freeze_top_count=cfg.book_page_freeze_top,
        freeze_increment=0.0,
        mid_tier_increment=0.1,
        outside_increment=1.0,
        cold_start_increment=1.0,
    )


def song_config(cfg: Settings = settings) -> RankingConfig:
    """Return the ranking rules for songs."""
    return RankingConfig(
        top_n=cfg.song_top_n,
        mid_tier_increment=0.1,
        age_tier_fn=age_bonus,
        dedup_ttl_seconds=cfg.song_dedup_ttl_seconds,
        atomic=cfg.song_atomic_increment,
    )


def tier_increment(
    entity_id: int,
    top_ids: list[int],
    config: RankingConfig,
    age_days: int = 0,
) -> float:
    """Return the delta for an entity given an ordered top-N snapshot."""
    if entity_id in top_ids[: config.freeze_top_count]:
        return config.freeze_increment
    if entity_id in top_ids:
        return config.mid_tier_increment
    if config.age_tier_fn is not None:
        return config.age_tier_fn(age_days)
    return config.outside_increment


def ranked_increment(
    entity: ScoredMixin,
    store: ScoredRecordStore,
    config: RankingConfig,
    now: datetime | None = None,
) -> float:
    """Return the delta one read of ``entity`` earns right now.

    The top-N snapshot is queried fresh on every call; it is never cached.
    """
    read_count = float(entity.read_count or 0.0)
    if config.cold_start_increment is not None and read_count == 0.0:
        return config.cold_start_increment

    top_ids = store.top_ids(config.top_n)
    return tier_increment(entity.id, top_ids, config, age_in_days(entity.created_at, now))
