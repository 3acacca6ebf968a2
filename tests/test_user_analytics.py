"""Activity tracking, reports, per-user lookups and exports."""

from datetime import datetime, timedelta

import pytest

from autoplatform.extensions.db import db
from autoplatform.models.user_activity_model import UserActivity
from autoplatform.models.user_model import User
from autoplatform.utils.helpers import utcnow

API = "/api/v1/user-analytics"


def _activity(user_id, activity_type, timestamp, **fields):
    return {"userId": user_id, "type": activity_type, "timestamp": timestamp, **fields}


def _seed(app, collection, docs):
    with app.app_context():
        db.get_collection(collection).insert_many(docs)


@pytest.fixture
def analyst_headers(make_user, auth_headers):
    return auth_headers(make_user(role="analyst"))


def test_track_activity(client, user_headers):
    res = client.post(f"{API}/track", json={"type": "page_view", "page": "/parts", "sessionId": "s-1"},
                      headers=user_headers)
    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["type"] == "page_view"
    assert data["timestamp"]


def test_track_requires_type(client, user_headers):
    res = client.post(f"{API}/track", json={"page": "/parts"}, headers=user_headers)
    assert res.status_code == 400


def test_reports_are_restricted(client, user_headers):
    assert client.get(f"{API}/engagement", headers=user_headers).status_code == 403
    assert client.get(f"{API}/export", headers=user_headers).status_code == 403


def test_unknown_user(client, analyst_headers):
    res = client.get(f"{API}/user/64b7f0000000000000000000", headers=analyst_headers)
    assert res.status_code == 404
    assert res.get_json()["error"] == "USER_NOT_FOUND"

    res = client.get(f"{API}/user/not-an-id", headers=analyst_headers)
    assert res.get_json()["error"] == "INVALID_ID"


def test_csv_export(client, admin_headers, user_headers):
    client.post(f"{API}/track", json={"type": "feature_use", "feature": "vin-lookup"}, headers=user_headers)
    res = client.get(f"{API}/export?format=csv", headers=admin_headers)
    assert res.mimetype == "text/csv"
    text = res.get_data(as_text=True)
    assert "feature_use" in text
    assert "vin-lookup" in text


def test_overview_counts_growth_and_retention(app, client, analyst_headers):
    now = utcnow()
    _seed(app, User.collection_name, [
        {"role": "user", "status": "active", "location": {"country": "GH"},
         "createdAt": now - timedelta(days=5), "lastLoginAt": now - timedelta(days=1)},
        {"role": "user", "status": "suspended", "location": {"country": "GH"},
         "createdAt": now - timedelta(days=10), "lastLoginAt": None},
        {"role": "mechanic", "status": "active", "location": {},
         "createdAt": now - timedelta(days=200), "lastLoginAt": now - timedelta(days=2)},
    ])

    data = client.get(f"{API}/overview", headers=analyst_headers).get_json()["data"]
    # the analyst making the request is the fourth user
    assert data["totalUsers"] == 4
    assert data["activeUsers"] == 2
    assert data["newUsers"] == 3
    assert data["retentionRate"] == 33.33
    assert data["byLocation"] == [{"_id": "GH", "count": 2}]
    assert {"_id": "suspended", "count": 1} in data["byStatus"]
    assert sum(day["count"] for day in data["growth"]) == 3


def test_behavior_breakdowns(app, client, analyst_headers):
    morning, afternoon = datetime(2024, 5, 6, 9, 15), datetime(2024, 5, 6, 14, 45)
    _seed(app, UserActivity.collection_name, [
        _activity("a", "session_start", morning),
        _activity("a", "session_end", morning, duration=120),
        _activity("b", "session_start", morning),
        _activity("b", "session_end", morning, duration=60),
        _activity("a", "conversion", afternoon),
        _activity("b", "page_view", afternoon, page="/parts"),
        _activity("b", "page_view", afternoon, page="/parts"),
        _activity("b", "page_view", datetime(2024, 6, 1), page="/parts"),
    ])

    res = client.get(f"{API}/behavior?startDate=2024-05-06&endDate=2024-05-07", headers=analyst_headers)
    data = res.get_json()["data"]
    assert data["totalActivities"] == 7
    assert data["byHour"] == [{"hour": 9, "count": 4}, {"hour": 14, "count": 3}]
    assert data["byDay"] == [{"day": "Monday", "dayOfWeek": 2, "count": 7}]
    assert data["topUsers"][0] == {"_id": "b", "count": 4}
    assert data["avgSessionDuration"] == 90.0
    assert data["topPages"] == [{"_id": "/parts", "count": 2}]
    assert data["conversionRate"] == 50.0


def test_engagement_segments_churn_and_value(app, client, analyst_headers):
    now = utcnow()
    _seed(app, UserActivity.collection_name, [
        _activity("a", "feature_use", now - timedelta(hours=1), feature="vin-lookup"),
        _activity("a", "feature_use", now - timedelta(days=3), feature="vin-lookup"),
        _activity("a", "purchase", now - timedelta(hours=2), amount=200.0),
        _activity("b", "feature_use", now - timedelta(days=5), feature="quotes"),
        _activity("d", "page_view", now - timedelta(days=10)),
        _activity("c", "page_view", now - timedelta(days=40)),
        _activity("e", "page_view", now - timedelta(days=90)),
    ])

    data = client.get(f"{API}/engagement", headers=analyst_headers).get_json()["data"]
    assert data["activeUsers"] == {"daily": 1, "weekly": 2, "monthly": 3}
    assert data["stickiness"] == 33.33
    assert data["segments"] == {"active": 2, "at_risk": 1, "inactive": 2}
    assert data["churn"] == {"usersConsidered": 4, "churnedUsers": 1, "churnRate": 25.0}
    assert data["featureUsage"][0] == {"feature": "vin-lookup", "usage": 2, "uniqueUsers": 1}
    assert data["engagementScores"][0]["userId"] == "a"
    assert data["lifetimeValue"]["totalRevenue"] == 200.0
    assert data["lifetimeValue"]["payingUsers"] == 1
    assert data["lifetimeValue"]["averageValue"] == 200.0


def test_engagement_with_no_activity(client, analyst_headers):
    data = client.get(f"{API}/engagement", headers=analyst_headers).get_json()["data"]
    assert data["activeUsers"] == {"daily": 0, "weekly": 0, "monthly": 0}
    assert data["churn"]["churnRate"] == 0
    assert data["lifetimeValue"]["averageValue"] == 0
