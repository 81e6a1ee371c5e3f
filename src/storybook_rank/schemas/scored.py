"""Schemas for scored entities and read recording."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ScoredOut(BaseModel):
    """Common fields of a ranked entity."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    read_count: float
    created_at: datetime | None = None
    popularity_percentage: int | None = Field(
        None, ge=0, le=100, description="Percentile rank within the entity's kind"
    )


class BookOut(ScoredOut):
    """Book as listed in popularity rankings."""

    title: str
    author: str | None = None


class PageOut(ScoredOut):
    """Page as listed in popularity rankings."""

    book_id: int | None = None
    content: str | None = None


class SongOut(ScoredOut):
    """Song as listed in popularity rankings."""

    title: str
    artist: str | None = None


class PopularityOut(BaseModel):
    """Percentile rank of a single entity."""

    kind: str
    id: int
    read_count: float
    popularity_percentage: int = Field(..., ge=0, le=100)


class ReadRecorded(BaseModel):
    """Acknowledgement returned once a view or play has been recorded."""

    counted: bool = Field(..., description="Whether the read was scheduled for counting")
