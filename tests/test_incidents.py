"""Incident reporting, workflow and metrics."""

from datetime import timedelta

import pytest

from autoplatform.models.incident_model import Incident
from autoplatform.utils.helpers import to_object_id, utcnow

API = "/api/v1/incidents"


@pytest.fixture
def incident(client, user_headers):
    res = client.post(f"{API}/", json={"title": "Flat tyre", "description": "Van 12 on the M4"},
                      headers=user_headers)
    assert res.status_code == 201
    return res.get_json()["data"]


def test_create_incident_defaults(incident):
    assert incident["status"] == "open"
    assert incident["priority"] == "medium"
    assert incident["severity"] == "medium"
    assert incident["category"] == "general"
    assert incident["comments"] == []
    assert incident["history"][0]["action"] == "created"


def test_create_requires_title_and_description(client, user_headers):
    res = client.post(f"{API}/", json={"title": "No description"}, headers=user_headers)
    assert res.status_code == 400
    assert res.get_json()["error"] == "VALIDATION_ERROR"


def test_list_is_public(client, incident):
    data = client.get(f"{API}/").get_json()["data"]
    assert data["pagination"]["total"] == 1
    assert data["pagination"]["limit"] == 10


def test_unknown_incident(client):
    res = client.get(f"{API}/64b7f0000000000000000000")
    assert res.status_code == 404
    assert res.get_json()["error"] == "INCIDENT_NOT_FOUND"


def test_update_appends_history(client, user_headers, incident):
    res = client.put(f"{API}/{incident['_id']}", json={"priority": "high", "title": incident["title"]},
                     headers=user_headers)
    data = res.get_json()["data"]
    assert data["priority"] == "high"
    assert data["history"][-1]["action"] == "updated"
    assert data["history"][-1]["details"]["changes"] == ["priority"]


def test_status_change_to_resolved(client, user_headers, incident):
    res = client.put(f"{API}/{incident['_id']}/status", json={"status": "resolved", "comment": "Fixed"},
                     headers=user_headers)
    data = res.get_json()["data"]
    assert data["status"] == "resolved"
    assert data["resolvedAt"]
    assert data["history"][-1]["details"] == {"oldStatus": "open", "newStatus": "resolved", "comment": "Fixed"}


def test_invalid_status(client, user_headers, incident):
    res = client.put(f"{API}/{incident['_id']}/status", json={"status": "exploded"}, headers=user_headers)
    assert res.status_code == 400
    assert res.get_json()["error"] == "INVALID_STATUS"


def test_assign_requires_manager(client, user_headers, admin_headers, incident):
    res = client.put(f"{API}/{incident['_id']}/assign", json={"assignedTo": "tech-1"}, headers=user_headers)
    assert res.status_code == 403
    res = client.put(f"{API}/{incident['_id']}/assign", json={"assignedTo": "tech-1"}, headers=admin_headers)
    assert res.get_json()["data"]["assignedTo"] == "tech-1"


def test_comment(client, user_headers, incident):
    res = client.post(f"{API}/{incident['_id']}/comment", json={"content": "Tow truck on the way"},
                      headers=user_headers)
    assert res.status_code == 201
    detail = client.get(f"{API}/{incident['_id']}").get_json()["data"]
    assert detail["comments"][0]["content"] == "Tow truck on the way"


def test_delete_is_admin_only(client, user_headers, admin_headers, incident):
    assert client.delete(f"{API}/{incident['_id']}", headers=user_headers).status_code == 403
    assert client.delete(f"{API}/{incident['_id']}", headers=admin_headers).status_code == 200
    assert client.get(f"{API}/{incident['_id']}").status_code == 404


def test_metrics(client, user_headers, admin_headers, incident):
    client.put(f"{API}/{incident['_id']}/status", json={"status": "resolved"}, headers=user_headers)
    data = client.get(f"{API}/metrics", headers=admin_headers).get_json()["data"]
    assert data["total"] == 1
    assert data["resolved"] == 1
    assert data["avgResolutionTimeMs"] >= 0


def test_reopening_clears_resolution(client, app, user_headers, admin_headers, incident):
    with app.app_context():
        Incident.get_collection().update_one(
            {"_id": to_object_id(incident["_id"])}, {"$set": {"createdAt": utcnow() - timedelta(hours=2)}}
        )
    url = f"{API}/{incident['_id']}/status"
    client.put(url, json={"status": "resolved"}, headers=user_headers)
    assert client.get(f"{API}/metrics", headers=admin_headers).get_json()["data"]["avgResolutionTimeHours"] >= 1.9

    data = client.put(url, json={"status": "open"}, headers=user_headers).get_json()["data"]
    assert "resolvedAt" not in data

    metrics = client.get(f"{API}/metrics", headers=admin_headers).get_json()["data"]
    assert metrics["resolved"] == 0
    assert metrics["avgResolutionTimeMs"] == 0


def test_update_to_in_progress_clears_resolution(client, user_headers, incident):
    client.put(f"{API}/{incident['_id']}/status", json={"status": "resolved"}, headers=user_headers)
    data = client.put(f"{API}/{incident['_id']}", json={"status": "in_progress"}, headers=user_headers).get_json()["data"]
    assert data["status"] == "in_progress"
    assert "resolvedAt" not in data
