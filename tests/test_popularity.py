"""Tests for percentile popularity of books, pages and songs."""

from types import SimpleNamespace

import pytest

from storybook_rank.models import Book, Song
from storybook_rank.services.popularity import PopularityService


def test_empty_population_scores_zero(db_session) -> None:
    """An entity measured against an empty table is at the 0th percentile."""
    detached = Book(title="Unsaved", read_count=12.0)
    assert PopularityService(db_session).calculate_popularity(detached) == 0


def test_single_entity_is_top(db_session, make_book) -> None:
    book = make_book(read_count=3.0)
    assert PopularityService(db_session).calculate_popularity(book) == 100


def test_percentile_counts_strictly_lower(db_session, make_book) -> None:
    books = [make_book(read_count=float(value)) for value in (1, 2, 3, 4, 5)]
    service = PopularityService(db_session)

    assert [service.calculate_popularity(book) for book in books] == [0, 25, 50, 75, 100]


def test_ties_share_a_percentile(db_session, make_book) -> None:
    """Equal scores are never 'strictly less', so ties cannot inflate each other."""
    low = make_book(read_count=1.0)
    tied = [make_book(read_count=5.0) for _ in range(3)]
    service = PopularityService(db_session)

    assert service.calculate_popularity(low) == 0
    assert {service.calculate_popularity(book) for book in tied} == {33}


def test_half_percentiles_round_up(db_session, make_book) -> None:
    """lower=1, total=9 gives 12.5, which rounds away from zero."""
    books = [make_book(read_count=float(value)) for value in range(9)]
    assert PopularityService(db_session).calculate_popularity(books[1]) == 13


def test_kinds_are_ranked_separately(db_session, make_book, make_song) -> None:
    make_book(read_count=500.0)
    song = make_song(read_count=1.0)
    assert PopularityService(db_session).calculate_popularity(song) == 100


def test_percentiles_are_bounded_and_monotonic(db_session, make_book) -> None:
    values = [0.0, 0.0, 1.5, 2.0, 2.0, 7.3, 10.0, 10.0, 99.9]
    books = [make_book(read_count=value) for value in values]
    service = PopularityService(db_session)

    scores = [service.calculate_popularity(book) for book in books]
    assert all(0 <= score <= 100 for score in scores)
    assert scores == sorted(scores)


def test_collection_empty_is_returned_unchanged(db_session) -> None:
    empty: list[Book] = []
    assert PopularityService(db_session).add_popularity_to_collection(empty, Book) is empty


def test_collection_against_empty_population(db_session) -> None:
    items = [SimpleNamespace(read_count=4.0), SimpleNamespace(read_count=None)]
    PopularityService(db_session).add_popularity_to_collection(items, Song)
    assert [item.popularity_percentage for item in items] == [0, 0]


def test_collection_against_single_entity(db_session, make_song) -> None:
    song = make_song(read_count=2.0)
    PopularityService(db_session).add_popularity_to_collection([song], Song)
    assert song.popularity_percentage == 100


def test_collection_uses_whole_population(db_session, make_book) -> None:
    """Only the top two are listed, but they are ranked against all five books."""
    books = [make_book(read_count=float(value)) for value in (10, 20, 30, 40, 50)]
    listed = [books[4], books[3]]

    result = PopularityService(db_session).add_popularity_to_collection(listed, Book)

    assert result is listed
    assert [book.popularity_percentage for book in listed] == [100, 75]


@pytest.mark.parametrize(
    "values",
    [
        [0.0, 1.0],
        [3.0, 3.0, 3.0, 1.0],
        [0.1, 0.2, 0.2, 5.0, 5.0, 5.0, 8.25, 13.0, 13.0, 40.0, 41.0],
    ],
)
def test_collection_agrees_with_single_calculation(db_session, make_book, values) -> None:
    books = [make_book(read_count=value) for value in values]
    service = PopularityService(db_session)
    expected = [service.calculate_popularity(book) for book in books]

    service.add_popularity_to_collection(books, Book)

    assert [book.popularity_percentage for book in books] == expected


def test_collection_does_not_persist_percentage(db_session, make_book) -> None:
    books = [make_book(read_count=1.0), make_book(read_count=2.0)]
    PopularityService(db_session).add_popularity_to_collection(books, Book)
    db_session.commit()

    assert "popularity_percentage" not in Book.__table__.c
    assert db_session.get(Book, books[0].id).read_count == 1.0
