"""Releases, push notification dispatch and feature flag rollout."""

import calendar
from datetime import timedelta

import pytest
from redis.exceptions import RedisError

from autoplatform.extensions.db import redis_connection
from autoplatform.models.mobile_model import PushNotification
from autoplatform.services import mobile_service
from autoplatform.services.mobile_service import PushNotificationService, rollout_bucket
from autoplatform.utils.helpers import utcnow

API = "/api/v1/mobile"


@pytest.fixture
def developer_headers(make_user, auth_headers):
    return auth_headers(make_user(role="developer"))


@pytest.fixture
def marketing_headers(make_user, auth_headers):
    return auth_headers(make_user(role="marketing"))


@pytest.fixture
def queued_jobs(monkeypatch):
    jobs = []

    def fake_enqueue(notification_id):
        jobs.append(str(notification_id))
        return f"job-{len(jobs)}"

    monkeypatch.setattr(PushNotificationService, "enqueue_delivery", staticmethod(fake_enqueue))
    return jobs


# ---------------------------- releases ----------------------------

def test_release_lifecycle(client, developer_headers):
    payload = {"version": "2.1.0", "platform": "ios", "buildNumber": "210"}
    res = client.post(f"{API}/releases", json=payload, headers=developer_headers)
    assert res.status_code == 201
    release = res.get_json()["data"]
    assert release["status"] == "draft"

    res = client.post(f"{API}/releases", json=payload, headers=developer_headers)
    assert res.status_code == 409
    assert res.get_json()["error"] == "RELEASE_EXISTS"

    res = client.put(f"{API}/releases/{release['_id']}/status", json={"status": "published"},
                     headers=developer_headers)
    assert res.get_json()["data"]["publishedAt"]


def test_same_version_on_other_platform(client, developer_headers):
    for platform in ("ios", "android"):
        res = client.post(f"{API}/releases", json={"version": "3.0", "platform": platform, "buildNumber": "1"},
                          headers=developer_headers)
        assert res.status_code == 201


def test_release_requires_developer(client, user_headers):
    res = client.post(f"{API}/releases", json={"version": "1.0", "platform": "ios", "buildNumber": "1"},
                      headers=user_headers)
    assert res.status_code == 403


# ---------------------------- push ----------------------------

def test_immediate_push_is_queued(client, marketing_headers, queued_jobs):
    res = client.post(f"{API}/notifications",
                      json={"title": "Sale", "body": "20% off filters", "type": "promotional",
                            "targetUsers": ["all"]},
                      headers=marketing_headers)
    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["status"] == "queued"
    assert data["jobId"] == "job-1"
    assert queued_jobs == [data["_id"]]


def test_future_push_is_scheduled(client, marketing_headers, queued_jobs):
    run_at = utcnow() + timedelta(days=1)
    res = client.post(f"{API}/notifications",
                      json={"title": "Reminder", "body": "Service due", "type": "reminder",
                            "targetUsers": ["u1"], "scheduledFor": run_at.isoformat()},
                      headers=marketing_headers)
    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["status"] == "scheduled"
    assert queued_jobs == []

    # held by rq-scheduler until its run time
    scheduler = redis_connection.scheduler
    assert data["jobId"] in scheduler
    score = redis_connection.get_connection().zscore(scheduler.scheduled_jobs_key, data["jobId"])
    assert int(score) == calendar.timegm(run_at.utctimetuple())


def test_push_when_queue_is_down(client, marketing_headers, monkeypatch):
    def broken(notification_id):
        raise RedisError("connection refused")

    monkeypatch.setattr(PushNotificationService, "enqueue_delivery", staticmethod(broken))
    res = client.post(f"{API}/notifications",
                      json={"title": "Alert", "body": "Recall", "type": "alert", "targetUsers": ["all"]},
                      headers=marketing_headers)
    assert res.status_code == 503
    assert res.get_json()["error"] == "QUEUE_UNAVAILABLE"


def test_scheduled_push_when_queue_is_down(app, client, marketing_headers, monkeypatch):
    def broken(notification_id, run_at):
        raise RedisError("connection refused")

    monkeypatch.setattr(PushNotificationService, "schedule_delivery", staticmethod(broken))
    when = (utcnow() + timedelta(hours=2)).isoformat()
    res = client.post(f"{API}/notifications",
                      json={"title": "Later", "body": "Recall", "type": "alert", "targetUsers": ["all"],
                            "scheduledFor": when},
                      headers=marketing_headers)
    assert res.status_code == 503
    with app.app_context():
        stored = PushNotification.get_collection().find_one({"title": "Later"})
    assert stored["status"] == "failed"


def test_deliver_writes_inbox_and_calls_gateway(app, client, make_user, auth_headers, monkeypatch):
    recipient = make_user()
    headers = auth_headers(recipient)
    client.post("/api/v1/realtime/notifications/register-device",
                json={"token": "device-abc", "deviceInfo": {"platform": "android"}}, headers=headers)

    calls = []

    class GatewayResponse:
        status_code = 202

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append((url, json, headers))
        return GatewayResponse()

    monkeypatch.setattr(mobile_service.requests, "post", fake_post)

    with app.app_context():
        push = PushNotification(title="Hello", body="Welcome aboard", type="system",
                                targetUsers=[recipient["_id"]], status="queued").save()
        stats = PushNotificationService.deliver(push["_id"], "https://push.example.com/send", "secret")
        stored = PushNotification.get_by_id(push["_id"])

    assert stats == {"targetUsers": 1, "deviceTokens": 1, "inAppDelivered": 1, "pushAccepted": 1}
    assert stored["status"] == "sent"
    assert calls[0][1]["tokens"] == ["device-abc"]
    assert calls[0][2] == {"Authorization": "Bearer secret"}

    inbox = client.get("/api/v1/realtime/notifications", headers=headers).get_json()["data"]
    assert inbox["unread"] == 1
    assert inbox["notifications"][0]["title"] == "Hello"


# ---------------------------- feature flags ----------------------------

def test_rollout_bucket_is_stable():
    assert rollout_bucket("new-checkout", "user-1") == rollout_bucket("new-checkout", "user-1")
    assert all(0 <= rollout_bucket("new-checkout", f"user-{i}") < 100 for i in range(50))


def test_flag_create_and_evaluate(client, developer_headers, user_headers):
    res = client.post(f"{API}/feature-flags", json={"name": "new-checkout", "status": "enabled"},
                      headers=developer_headers)
    assert res.status_code == 201
    flag = res.get_json()["data"]
    assert flag["rolloutPercentage"] == 100

    res = client.post(f"{API}/feature-flags", json={"name": "new-checkout"}, headers=developer_headers)
    assert res.get_json()["error"] == "FLAG_EXISTS"

    data = client.get(f"{API}/feature-flags/evaluate?name=new-checkout", headers=user_headers).get_json()["data"]
    assert data["enabled"] is True

    client.put(f"{API}/feature-flags/{flag['_id']}", json={"status": "enabled", "rolloutPercentage": 0},
               headers=developer_headers)
    data = client.get(f"{API}/feature-flags/evaluate?name=new-checkout", headers=user_headers).get_json()["data"]
    assert data["enabled"] is False


def test_flag_listing_includes_all_platform(client, developer_headers):
    client.post(f"{API}/feature-flags", json={"name": "dark-mode", "platform": "ios"}, headers=developer_headers)
    client.post(f"{API}/feature-flags", json={"name": "chat", "platform": "all"}, headers=developer_headers)
    client.post(f"{API}/feature-flags", json={"name": "widgets", "platform": "android"}, headers=developer_headers)

    flags = client.get(f"{API}/feature-flags?platform=ios", headers=developer_headers).get_json()["data"]["flags"]
    assert [f["name"] for f in flags] == ["chat", "dark-mode"]


def test_unknown_flag(client, user_headers):
    res = client.get(f"{API}/feature-flags/evaluate?name=missing", headers=user_headers)
    assert res.status_code == 404

