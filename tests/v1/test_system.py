"""Tests for system and transparency endpoints."""

from fastapi import status
from fastapi.testclient import TestClient

from storybook_rank.core.settings import settings
from storybook_rank.models import ReadCountTask
from storybook_rank.models.read_task import TASK_STATUS_FAILED


def test_system_config(client: TestClient) -> None:
    """The public config exposes ranking tiers but no secrets."""
    r = client.get("/api/v1/system/config")
    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert {"app", "ranking", "throttle", "queue"} <= data.keys()
    assert data["ranking"]["age_bonus"]["tiers"][0] == {"max_age_days": 7, "bonus": 3.0}
    assert data["ranking"]["age_bonus"]["fallback"] == 1.0
    assert settings.secret_key not in r.text
    assert "database_url" not in r.text


def test_queue_stats_by_status(client: TestClient, db_session, make_book) -> None:
    book = make_book()
    client.post(f"/api/v1/books/{book.id}/reads")
    db_session.add(ReadCountTask(kind="page", entity_id=1, status=TASK_STATUS_FAILED))
    db_session.commit()

    r = client.get("/api/v1/system/queue")

    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"pending": 1, "failed": 1}


def test_queue_stats_empty(client: TestClient) -> None:
    assert client.get("/api/v1/system/queue").json() == {}
