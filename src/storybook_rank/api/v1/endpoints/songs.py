# src/storybook_rank/api/v1/endpoints/songs.py
"""Song play-count endpoints for the Storybook Rank API."""

from fastapi import APIRouter, Query, status

from storybook_rank.api.v1.dependencies import (
    ActorDep,
    MarkerStoreDep,
    SessionDep,
    get_entity_or_404,
    popularity_of,
    record_read,
    top_by_read_count,
)
from storybook_rank.models import Song
from storybook_rank.schemas.scored import PopularityOut, ReadRecorded, SongOut
from storybook_rank.services.kinds import EntityKind

router = APIRouter(prefix="/songs", tags=["songs", "music"])


@router.get("/popular", response_model=list[SongOut])
async def list_popular_songs(
    db: SessionDep,
    limit: int = Query(5, ge=1, le=100, description="Maximum number of songs to return"),
) -> list[Song]:
    """List the most-played songs with their popularity percentile."""
    return top_by_read_count(db, Song, limit)


@router.get("/{song_id}/popularity", response_model=PopularityOut)
async def get_song_popularity(song_id: int, db: SessionDep) -> dict[str, object]:
    """Return the popularity percentile of a single song."""
    return popularity_of(db, EntityKind.SONG, song_id)


@router.post(
    "/{song_id}/plays",
    response_model=ReadRecorded,
    status_code=status.HTTP_202_ACCEPTED,
)
async def record_song_play(
    song_id: int,
    db: SessionDep,
    markers: MarkerStoreDep,
    actor: ActorDep,
) -> ReadRecorded:
    """Record that the caller played a song.

    Plays are not throttled per viewer; the worker deduplicates repeated
    plays of the same song instead.

    Raises:
        HTTPException: If the song does not exist
    """
    get_entity_or_404(db, Song, song_id)
    counted = record_read(db, markers, EntityKind.SONG, song_id, actor, throttle=False)
    return ReadRecorded(counted=counted)
