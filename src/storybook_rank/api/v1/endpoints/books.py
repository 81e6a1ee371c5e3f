# src/storybook_rank/api/v1/endpoints/books.py
"""Book read-count endpoints for the Storybook Rank API."""

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
from storybook_rank.models import Book
from storybook_rank.schemas.scored import BookOut, PopularityOut, ReadRecorded
from storybook_rank.services.kinds import EntityKind

router = APIRouter(prefix="/books", tags=["books"])


@router.get("/popular", response_model=list[BookOut])
async def list_popular_books(
    db: SessionDep,
    limit: int = Query(5, ge=1, le=100, description="Maximum number of books to return"),
) -> list[Book]:
    """List the most-read books with their popularity percentile."""
    return top_by_read_count(db, Book, limit)


@router.get("/{book_id}/popularity", response_model=PopularityOut)
async def get_book_popularity(book_id: int, db: SessionDep) -> dict[str, object]:
    """Return the popularity percentile of a single book."""
    return popularity_of(db, EntityKind.BOOK, book_id)


@router.post(
    "/{book_id}/reads",
    response_model=ReadRecorded,
    status_code=status.HTTP_202_ACCEPTED,
)
async def record_book_read(
    book_id: int,
    db: SessionDep,
    markers: MarkerStoreDep,
    actor: ActorDep,
) -> ReadRecorded:
    """Record that the caller opened a book.

    Each viewer counts at most once per throttle window; the increment
    itself is applied later by the read-count worker.

    Raises:
        HTTPException: If the book does not exist
    """
    get_entity_or_404(db, Book, book_id)
    counted = record_read(db, markers, EntityKind.BOOK, book_id, actor)
    return ReadRecorded(counted=counted)
