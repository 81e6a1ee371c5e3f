# src/storybook_rank/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .books import router as books_router
from .pages import router as pages_router
from .songs import router as songs_router
from .system import router as system_router

__all__ = [
    "books_router",
    "pages_router",
    "songs_router",
    "system_router",
]
