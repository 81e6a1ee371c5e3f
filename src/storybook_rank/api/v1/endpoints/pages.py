# src/storybook_rank/api/v1/endpoints/pages.py
"""Page read-count endpoints for the Storybook Rank API."""

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
from storybook_rank.models import Page
from storybook_rank.schemas.scored import PageOut, PopularityOut, ReadRecorded
from storybook_rank.services.kinds import EntityKind

router = APIRouter(prefix="/pages", tags=["pages"])


@router.get("/popular", response_model=list[PageOut])
async def list_popular_pages(
    db: SessionDep,
    limit: int = Query(5, ge=1, le=100, description="Maximum number of pages to return"),
) -> list[Page]:
    """List the most-read pages with their popularity percentile."""
    return top_by_read_count(db, Page, limit)


@router.get("/{page_id}/popularity", response_model=PopularityOut)
async def get_page_popularity(page_id: int, db: SessionDep) -> dict[str, object]:
    """Return the popularity percentile of a single page."""
    return popularity_of(db, EntityKind.PAGE, page_id)


@router.post(
    "/{page_id}/reads",
    response_model=ReadRecorded,
    status_code=status.HTTP_202_ACCEPTED,
)
async def record_page_read(
    page_id: int,
    db: SessionDep,
    markers: MarkerStoreDep,
    actor: ActorDep,
) -> ReadRecorded:
    """Record that the caller opened a page.

    Each viewer counts at most once per throttle window; the increment
    itself is applied later by the read-count worker.

    Raises:
        HTTPException: If the page does not exist
    """
    get_entity_or_404(db, Page, page_id)
    counted = record_read(db, markers, EntityKind.PAGE, page_id, actor)
    return ReadRecorded(counted=counted)
