"""Feedback submission, ownership and triage."""

from datetime import timedelta

import pytest

from autoplatform.models.feedback_model import Feedback
from autoplatform.services.feedback_service import FeedbackService
from autoplatform.utils.helpers import utcnow

API = "/api/v1/feedback"


@pytest.fixture
def owner(make_user, auth_headers):
    user = make_user()
    return user, auth_headers(user)


@pytest.fixture
def feedback(client, owner):
    res = client.post(f"{API}/", json={"type": "bug", "subject": "App crash", "message": "Crashes on login"},
                      headers=owner[1])
    assert res.status_code == 201
    return res.get_json()["data"]


def test_submit_sets_reference(feedback):
    assert feedback["feedbackReference"].startswith("FB-")
    assert feedback["status"] == "open"
    assert feedback["priority"] == "medium"


def test_missing_fields(client, user_headers):
    res = client.post(f"{API}/", json={"type": "bug"}, headers=user_headers)
    assert res.status_code == 400
    assert res.get_json()["error"] == "MISSING_REQUIRED_FIELDS"


def test_only_owner_or_admin_can_edit(client, user_headers, admin_headers, owner, feedback):
    url = f"{API}/{feedback['_id']}"
    res = client.put(url, json={"subject": "Hijacked"}, headers=user_headers)
    assert res.status_code == 403
    assert res.get_json()["error"] == "UNAUTHORIZED"

    assert client.put(url, json={"subject": "Crash on login"}, headers=owner[1]).status_code == 200
    res = client.put(url, json={"priority": "high"}, headers=admin_headers)
    assert res.get_json()["data"]["priority"] == "high"


def test_status_transitions_stamp_times(client, admin_headers, feedback):
    url = f"{API}/{feedback['_id']}/status"
    data = client.patch(url, json={"status": "in_progress"}, headers=admin_headers).get_json()["data"]
    assert data["inProgressAt"] and data["assignedTo"]

    data = client.patch(url, json={"status": "resolved", "adminResponse": "Fixed in 2.1"},
                        headers=admin_headers).get_json()["data"]
    assert data["resolvedAt"]
    assert data["adminResponse"]["message"] == "Fixed in 2.1"


def test_admin_flag_ignored_for_regular_users(client, owner, feedback):
    res = client.post(f"{API}/{feedback['_id']}/response",
                      json={"response": "Still broken", "isAdminResponse": True}, headers=owner[1])
    assert res.status_code == 201
    assert res.get_json()["data"]["isAdminResponse"] is False


def test_search_requires_query(client, user_headers):
    res = client.get(f"{API}/search/query", headers=user_headers)
    assert res.status_code == 400
    assert res.get_json()["error"] == "MISSING_QUERY"


def test_search_escapes_regex(client, owner, feedback):
    data = client.get(f"{API}/search/query?q=crash", headers=owner[1]).get_json()["data"]
    assert data["pagination"]["total"] == 1
    data = client.get(f"{API}/search/query?q=.*", headers=owner[1]).get_json()["data"]
    assert data["pagination"]["total"] == 0


def test_open_list_orders_by_priority(client, owner, admin_headers, feedback):
    client.post(f"{API}/", json={"type": "complaint", "subject": "Late", "message": "Late delivery",
                                 "priority": "urgent"}, headers=owner[1])
    items = client.get(f"{API}/open/list", headers=admin_headers).get_json()["data"]["feedback"]
    assert [i["priority"] for i in items] == ["urgent", "medium"]


def test_open_items_limit_keeps_most_urgent(app):
    base = utcnow() - timedelta(days=10)
    docs = [
        {"subject": f"Low {n}", "priority": "low", "status": "open", "createdAt": base + timedelta(hours=n)}
        for n in range(5)
    ]
    docs += [
        {"subject": "Old closed", "priority": "urgent", "status": "closed", "createdAt": base},
        {"subject": "Newest urgent", "priority": "urgent", "status": "in_progress", "createdAt": utcnow()},
        {"subject": "High", "priority": "high", "status": "open", "createdAt": base + timedelta(days=1)},
    ]
    with app.app_context():
        Feedback.get_collection().insert_many(docs)
        items = FeedbackService.open_items(limit=3)

    assert [i["subject"] for i in items] == ["Newest urgent", "High", "Low 0"]


def test_stats(client, admin_headers, feedback):
    data = client.get(f"{API}/stats/overview", headers=admin_headers).get_json()["data"]
    assert data["total"] == 1
    assert data["byType"] == [{"_id": "bug", "count": 1}]
