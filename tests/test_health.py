from http import HTTPStatus
from unittest import mock

import pytest
from django.db import connection as dj_conn
from django.test import override_settings


class DummyDbError(Exception):
    """Synthetic DB error for testing."""


@pytest.mark.django_db
def test_health_ok(client):
    resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["status"] == "ok"
    assert data["components"]["db"]["ok"] is True
    # Tests run without a message queue.
    assert data["components"]["realtime"] == {"ok": True, "backend": "in-process"}


@pytest.mark.django_db
@override_settings(SOCKETIO_MESSAGE_QUEUE="redis://localhost:6379/0")
def test_health_pings_message_queue(client):
    with mock.patch("config.health.redis.Redis.ping", return_value=True) as ping:
        resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.OK
    assert resp.json()["components"]["realtime"] == {"ok": True, "backend": "redis"}
    ping.assert_called_once()


@pytest.mark.django_db
@override_settings(SOCKETIO_MESSAGE_QUEUE="redis://localhost:6379/0")
def test_health_degraded_when_message_queue_fails(client):
    with mock.patch(
        "config.health.redis.Redis.ping",
        side_effect=TimeoutError("redis timeout"),
    ):
        resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    data = resp.json()
    assert data["components"]["realtime"]["ok"] is False
    assert data["components"]["realtime"]["error"] == "redis timeout"
    assert data["status"] == "degraded"


@pytest.mark.django_db
def test_health_degraded_when_db_fails(client, monkeypatch):
    msg = "db down"

    def raise_cursor():
        raise DummyDbError(msg)

    monkeypatch.setattr(dj_conn, "cursor", raise_cursor, raising=True)
    resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    data = resp.json()
    assert data["components"]["db"]["ok"] is False
    assert data["status"] == "degraded"


@pytest.mark.django_db
@override_settings(SOCKETIO_MESSAGE_QUEUE="redis://localhost:6379/0")
def test_health_down_when_everything_fails(client, monkeypatch):
    def raise_cursor():
        raise DummyDbError("db down")

    monkeypatch.setattr(dj_conn, "cursor", raise_cursor, raising=True)
    with mock.patch(
        "config.health.redis.Redis.ping", side_effect=ConnectionError("refused")
    ):
        resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    assert resp.json()["status"] == "down"
