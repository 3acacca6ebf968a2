"""Liveness and readiness probes."""

from pymongo.errors import ServerSelectionTimeoutError

from autoplatform.extensions.db import db


def test_ping_at_root(client):
    res = client.get("/ping")
    assert res.status_code == 200
    body = res.get_json()
    assert body["success"] is True
    assert body["data"]["status"] == "pong"
    assert "timestamp" in body


def test_health_ping_alias(client):
    assert client.get("/health/ping").status_code == 200


def test_health_reports_database(client, monkeypatch):
    monkeypatch.setattr(db, "ping", lambda: {"ok": 1})
    res = client.get("/api/v1/health")
    assert res.status_code == 200
    assert res.get_json()["data"]["database"] == "connected"


def test_health_unavailable_when_ping_fails(client, monkeypatch):
    def failing_ping():
        raise ServerSelectionTimeoutError("no servers")

    monkeypatch.setattr(db, "ping", failing_ping)
    res = client.get("/api/v1/health")
    assert res.status_code == 503
    assert res.get_json()["error"] == "SERVICE_UNAVAILABLE"


def test_unknown_route_uses_envelope(client):
    res = client.get("/api/v1/does-not-exist")
    assert res.status_code == 404
    body = res.get_json()
    assert body["success"] is False
    assert body["error"] == "NOT_FOUND"
