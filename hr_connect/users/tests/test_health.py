from http import HTTPStatus
from unittest import mock

import pytest
import redis
from django.db import connection as dj_conn

pytestmark = pytest.mark.django_db


class DummyDbError(Exception):
    """Synthetic DB error for testing."""


@pytest.fixture
def redis_up():
    with mock.patch("config.health.redis.Redis.ping", return_value=True):
        yield


@pytest.mark.usefixtures("redis_up")
def test_health_ok(client):
    resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["status"] == "ok"
    assert data["components"]["db"]["ok"] is True
    assert data["components"]["realtime"]["connections"] == 0


def test_health_degraded_when_redis_fails(client):
    with mock.patch(
        "config.health.redis.Redis.ping",
        side_effect=redis.ConnectionError("redis timeout"),
    ):
        resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    data = resp.json()
    assert data["components"]["redis"]["ok"] is False
    assert data["status"] == "degraded"


@pytest.mark.usefixtures("redis_up")
def test_health_degraded_when_db_fails(client, monkeypatch):
    msg = "db down"

    def raise_cursor():
        raise DummyDbError(msg)

    monkeypatch.setattr(dj_conn, "cursor", raise_cursor, raising=True)
    resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    assert resp.json()["components"]["db"] == {"ok": False, "error": msg}
