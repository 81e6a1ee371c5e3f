# src/storybook_rank/models/song.py
"""SQLAlchemy model for songs in the music library."""

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from storybook_rank.db.session import Base
from storybook_rank.models.scored import ScoredMixin


class Song(ScoredMixin, Base):
    """A track synced from a YouTube playlist."""

    __tablename__ = "songs"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    artist: Mapped[str | None] = mapped_column(Text, nullable=True)
    # YouTube video id; playback happens client-side.
    youtube_video_id: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True)
