# src/storybook_rank/models/book.py
"""SQLAlchemy models for books and their pages."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storybook_rank.db.session import Base
from storybook_rank.models.scored import ScoredMixin


class Book(ScoredMixin, Base):
    """A book of photos and videos shared with the family."""

    __tablename__ = "books"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str | None] = mapped_column(Text, nullable=True)
    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)

    pages: Mapped[list[Page]] = relationship(
        "Page",
        back_populates="book",
        cascade="all, delete-orphan",
    )


class Page(ScoredMixin, Base):
    """A single photo, video or text page inside a book."""

    __tablename__ = "pages"

    book_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=True,
    )
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    media_path: Mapped[str | None] = mapped_column(Text, nullable=True)

    book: Mapped[Book | None] = relationship("Book", back_populates="pages")
