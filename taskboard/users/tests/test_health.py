from http import HTTPStatus
from unittest import mock

import pytest
from django.db import DEFAULT_DB_ALIAS
from django.db import connection as dj_conn

from config.health import health


class DummyDbError(Exception):
    """Synthetic DB error for testing."""


@pytest.mark.django_db
def test_health_ok(client):
    resp = client.get("/health")
    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["status"] == "ok"
    assert data["message"] == "Task Management API is running"
    assert "timestamp" in data
    assert data["components"]["db"]["ok"] is True
    assert data["components"]["realtime"] == {"ok": True, "connections": 0}


@pytest.mark.django_db
def test_health_needs_no_token(client):
    assert client.get("/health/").status_code == HTTPStatus.OK


@pytest.mark.django_db
def test_health_degraded_when_realtime_fails(client):
    with mock.patch(
        "config.health.get_gateway",
        side_effect=RuntimeError("gateway not started"),
    ):
        resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["status"] == "degraded"
    assert data["components"]["realtime"]["ok"] is False


@pytest.mark.django_db
def test_health_down_when_db_fails(client, monkeypatch):
    msg = "db down"

    def raise_cursor():
        raise DummyDbError(msg)

    monkeypatch.setattr(dj_conn, "cursor", raise_cursor, raising=True)
    resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    data = resp.json()
    assert data["status"] == "down"
    assert data["components"]["db"]["ok"] is False


def test_health_runs_outside_request_transaction():
    assert DEFAULT_DB_ALIAS in health._non_atomic_requests  # noqa: SLF001
