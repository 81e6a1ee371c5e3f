# src/storybook_rank/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    books_router,
    pages_router,
    songs_router,
    system_router,
)

__all__ = [
    "books_router",
    "pages_router",
    "songs_router",
    "system_router",
]
