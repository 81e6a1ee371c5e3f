"""Print the weekly read-count statistics for books, pages and songs."""
from __future__ import annotations

import argparse
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from storybook_rank.db.session import SessionLocal
from storybook_rank.models import Book, Page, Song
from storybook_rank.services.popularity import PopularityService


@dataclass
class WeeklyStats:
    """Snapshot of the population and its most and least read entries."""

    total_books: int
    total_pages: int
    total_songs: int
    most_read_books: list[Book] = field(default_factory=list)
    least_read_book: Book | None = None
    most_read_songs: list[Song] = field(default_factory=list)


def collect_stats(db: Session, limit: int = 5) -> WeeklyStats:
    """Gather totals and the most-read books and songs with popularity attached."""
    popularity = PopularityService(db)

    most_read_books = (
        db.query(Book).order_by(Book.read_count.desc(), Book.created_at).limit(limit).all()
    )
    popularity.add_popularity_to_collection(most_read_books, Book)

    most_read_songs = db.query(Song).order_by(Song.read_count.desc()).limit(limit).all()
    popularity.add_popularity_to_collection(most_read_songs, Song)

    return WeeklyStats(
        total_books=db.query(Book).count(),
        total_pages=db.query(Page).count(),
        total_songs=db.query(Song).count(),
        most_read_books=most_read_books,
        least_read_book=db.query(Book).order_by(Book.read_count, Book.created_at).first(),
        most_read_songs=most_read_songs,
    )


def render_stats(stats: WeeklyStats) -> str:
    """Format the statistics as plain text."""
    lines = [
        f"Books: {stats.total_books}  Pages: {stats.total_pages}  Songs: {stats.total_songs}",
        "",
        "Most read books:",
    ]
    for book in stats.most_read_books:
        lines.append(
            f"  {book.title}  reads={book.read_count:g}  popularity={book.popularity_percentage}%"
        )
    if stats.least_read_book is not None:
        lines.append(
            f"Least read book: {stats.least_read_book.title} "
            f"(reads={stats.least_read_book.read_count:g})"
        )
    lines.append("")
    lines.append("Most played songs:")
    for song in stats.most_read_songs:
        lines.append(
            f"  {song.title}  plays={song.read_count:g}  popularity={song.popularity_percentage}%"
        )
    return "\n".join(lines)


def main() -> None:
    parser = argparse.ArgumentParser(description="Print weekly read-count statistics")
    parser.add_argument(
        "--limit",
        type=int,
        default=5,
        help="Number of most-read books and songs to list (default: 5)",
    )
    args = parser.parse_args()

    with SessionLocal() as db:
        print(render_stats(collect_stats(db, limit=args.limit)))


if __name__ == "__main__":
    main()
