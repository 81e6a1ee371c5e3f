# src/storybook_rank/models/__init__.py
"""SQLAlchemy models for the Storybook Rank service."""

from .book import Book, Page
from .read_task import ReadCountTask
from .scored import ScoredMixin
from .song import Song

__all__ = [
    "Book", "Page",
    "ReadCountTask",
    "ScoredMixin",
    "Song",
]
