"""scored entities and read count tasks

Revision ID: 3f1c2a9b7d10
Revises:
Create Date: 2026-10-12 09:14:02.418211

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9b7d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _scored_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("read_count", sa.Float(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create books, pages, songs and the read-count task queue."""
    op.create_table(
        "books",
        *_scored_columns(),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("author", sa.Text(), nullable=True),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_books_read_count", "books", ["read_count"])

    op.create_table(
        "pages",
        *_scored_columns(),
        sa.Column("book_id", sa.Integer(), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("media_path", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["book_id"], ["books.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pages_read_count", "pages", ["read_count"])

    op.create_table(
        "songs",
        *_scored_columns(),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("artist", sa.Text(), nullable=True),
        sa.Column("youtube_video_id", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("youtube_video_id"),
    )
    op.create_index("ix_songs_read_count", "songs", ["read_count"])

    op.create_table(
        "read_count_task",
        # SQLite only auto-assigns ids to INTEGER PRIMARY KEY columns.
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            autoincrement=True,
            nullable=False,
        ),
        sa.Column("kind", sa.VARCHAR(length=16), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.VARCHAR(length=20), nullable=False),
        sa.Column("outcome", sa.VARCHAR(length=20), nullable=True),
        sa.Column("attempts", sa.SmallInteger(), nullable=False),
        sa.Column("available_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_read_count_task_status", "read_count_task", ["status"])


def downgrade() -> None:
    """Drop the scored entity tables."""
    op.drop_index("ix_read_count_task_status", table_name="read_count_task")
    op.drop_table("read_count_task")
    op.drop_index("ix_songs_read_count", table_name="songs")
    op.drop_table("songs")
    op.drop_index("ix_pages_read_count", table_name="pages")
    op.drop_table("pages")
    op.drop_index("ix_books_read_count", table_name="books")
    op.drop_table("books")
