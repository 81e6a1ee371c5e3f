"""Entity kinds that carry a read-count score."""

from __future__ import annotations

from enum import Enum

from storybook_rank.models import Book, Page, Song
from storybook_rank.models.scored import ScoredMixin


class ReadCountError(RuntimeError):
    """Base exception for read-count ranking failures."""


class UnknownEntityKindError(ReadCountError, ValueError):
    """Raised when a kind string does not name a scored entity."""


class EntityKind(str, Enum):
    """Scored entity kinds, valued by the name used in keys and task rows."""

    BOOK = "book"
    PAGE = "page"
    SONG = "song"

    @classmethod
    def parse(cls, value: str | EntityKind) -> EntityKind:
        """Return the kind named by ``value``.

        Raises:
            UnknownEntityKindError: If ``value`` is not a known kind.
        """
        try:
            return cls(value)
        except ValueError as err:
            raise UnknownEntityKindError(f"Unknown entity kind: {value!r}") from err

    @property
    def model(self) -> type[ScoredMixin]:
        """Return the ORM model backing this kind."""
        return _MODELS[self]


_MODELS: dict[EntityKind, type[ScoredMixin]] = {
    EntityKind.BOOK: Book,
    EntityKind.PAGE: Page,
    EntityKind.SONG: Song,
}
