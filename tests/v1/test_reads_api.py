"""Tests for the read recording and popularity endpoints."""

from fastapi import status
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.exc import OperationalError

from storybook_rank.core.settings import settings
from storybook_rank.models import Book, ReadCountTask
from storybook_rank.models.read_task import TASK_STATUS_PENDING
from storybook_rank.services.task_queue import ReadCountQueue


def _token(subject: str, permissions: list[str] | None = None) -> dict[str, str]:
    claims = {"sub": subject, "permissions": permissions or []}
    token = jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)
    return {"Authorization": f"Bearer {token}"}


def _pending(db_session) -> list[ReadCountTask]:
    db_session.expire_all()
    return db_session.query(ReadCountTask).filter_by(status=TASK_STATUS_PENDING).all()


def test_book_read_is_queued_once_per_viewer(client: TestClient, db_session, make_book) -> None:
    book = make_book(read_count=2.0)

    first = client.post(f"/api/v1/books/{book.id}/reads")
    again = client.post(f"/api/v1/books/{book.id}/reads")

    assert first.status_code == status.HTTP_202_ACCEPTED
    assert first.json() == {"counted": True}
    assert again.json() == {"counted": False}
    assert [(task.kind, task.entity_id) for task in _pending(db_session)] == [("book", book.id)]


def test_read_of_missing_book_is_404(client: TestClient) -> None:
    r = client.post("/api/v1/books/999/reads")
    assert r.status_code == status.HTTP_404_NOT_FOUND
    assert r.json()["detail"] == "Book not found"


def test_queue_failure_is_reported_as_not_counted(
    client: TestClient, db_session, make_book, mocker
) -> None:
    book = make_book()
    mocker.patch.object(
        ReadCountQueue,
        "enqueue",
        side_effect=OperationalError("INSERT INTO read_count_task", {}, Exception("locked")),
    )

    r = client.post(f"/api/v1/books/{book.id}/reads")

    assert r.status_code == status.HTTP_202_ACCEPTED
    assert r.json() == {"counted": False}

    # Neither the viewer nor the book stays locked out after the failure.
    mocker.stopall()
    assert client.post(f"/api/v1/books/{book.id}/reads").json() == {"counted": True}
    assert len(_pending(db_session)) == 1

def test_page_reads_throttle_per_signed_in_user(client: TestClient, make_page) -> None:
    page = make_page()

    assert client.post(f"/api/v1/pages/{page.id}/reads", headers=_token("u1")).json()["counted"]
    assert not client.post(f"/api/v1/pages/{page.id}/reads", headers=_token("u1")).json()[
        "counted"
    ]


def test_session_cookie_identifies_viewer(client: TestClient, make_page) -> None:
    page = make_page()
    client.cookies.set(settings.session_cookie_name, "abc")

    assert client.post(f"/api/v1/pages/{page.id}/reads").json() == {"counted": True}
    assert client.post(f"/api/v1/pages/{page.id}/reads").json() == {"counted": False}


def test_editor_views_are_not_counted(client: TestClient, db_session, make_book) -> None:
    book = make_book()
    headers = _token("editor-1", ["edit profile"])

    r = client.post(f"/api/v1/books/{book.id}/reads", headers=headers)

    assert r.status_code == status.HTTP_202_ACCEPTED
    assert r.json() == {"counted": False}
    assert _pending(db_session) == []


def test_invalid_token_falls_back_to_address(client: TestClient, make_book) -> None:
    book = make_book()
    headers = {"Authorization": "Bearer not-a-jwt"}

    assert client.post(f"/api/v1/books/{book.id}/reads", headers=headers).json()["counted"]
    assert not client.post(f"/api/v1/books/{book.id}/reads").json()["counted"]


def test_song_plays_are_not_throttled(client: TestClient, db_session, make_song) -> None:
    song = make_song()

    for _ in range(2):
        r = client.post(f"/api/v1/songs/{song.id}/plays")
        assert r.status_code == status.HTTP_202_ACCEPTED
        assert r.json() == {"counted": True}

    assert len(_pending(db_session)) == 2


def test_sync_mode_applies_increment_in_request(
    client: TestClient, db_session, make_book, monkeypatch
) -> None:
    monkeypatch.setattr(settings, "read_queue_sync", True)
    book = make_book(read_count=0.0)

    client.post(f"/api/v1/books/{book.id}/reads")

    assert db_session.get(Book, book.id, populate_existing=True).read_count == 1.0
    assert _pending(db_session) == []


def test_popular_books_carry_percentile(client: TestClient, make_book) -> None:
    for value in (10.0, 20.0, 30.0):
        make_book(read_count=value)

    r = client.get("/api/v1/books/popular", params={"limit": 2})

    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert [(item["read_count"], item["popularity_percentage"]) for item in data] == [
        (30.0, 100),
        (20.0, 50),
    ]


def test_popular_limit_is_validated(client: TestClient) -> None:
    r = client.get("/api/v1/songs/popular", params={"limit": 0})
    assert r.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_song_popularity(client: TestClient, make_song) -> None:
    make_song(read_count=1.0)
    song = make_song(read_count=4.0)

    r = client.get(f"/api/v1/songs/{song.id}/popularity")

    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {
        "kind": "song",
        "id": song.id,
        "read_count": 4.0,
        "popularity_percentage": 100,
    }


def test_popularity_of_missing_page_is_404(client: TestClient) -> None:
    assert client.get("/api/v1/pages/12/popularity").status_code == status.HTTP_404_NOT_FOUND
