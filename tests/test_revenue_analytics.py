"""Revenue reports over stored orders."""

from datetime import datetime, timedelta

import pytest

from autoplatform.extensions.db import db
from autoplatform.models.auto_parts_model import AutoPartOrder
from autoplatform.utils.helpers import utcnow

API = "/api/v1/revenue-analytics"


@pytest.fixture
def orders(app):
    now = utcnow()

    def order(total, shop, customer, status="delivered", days_ago=1, category="brakes"):
        return {
            "orderNumber": f"ORD-{shop}-{total}",
            "items": [{"partId": "p1", "name": "Pad", "category": category, "quantity": 1, "total": total}],
            "customerInfo": {"name": customer, "email": f"{customer}@example.com"},
            "totalAmount": total,
            "status": status,
            "shopId": shop,
            "paymentMethod": "card",
            "createdBy": customer,
            "createdAt": now - timedelta(days=days_ago),
        }

    docs = [
        order(100.0, "north", "ann"),
        order(50.0, "south", "ann", category="filters"),
        order(30.0, "north", "ben", status="cancelled"),
        order(80.0, "north", "ben", days_ago=45),
    ]
    with app.app_context():
        db.get_collection(AutoPartOrder.collection_name).insert_many(docs)
    return docs


@pytest.fixture
def analyst_headers(make_user, auth_headers):
    return auth_headers(make_user(role="analyst"))


def test_reports_require_revenue_role(client, user_headers):
    res = client.get(f"{API}/segments", headers=user_headers)
    assert res.status_code == 403


def test_segments_by_shop_ignore_cancelled(client, analyst_headers, orders):
    data = client.get(f"{API}/segments?segmentBy=shop", headers=analyst_headers).get_json()["data"]
    assert [(s["_id"], s["revenue"]) for s in data["segments"]] == [("north", 100.0), ("south", 50.0)]
    assert data["analysis"]["totalRevenue"] == 150.0
    assert data["analysis"]["topSegment"]["percentage"] == 66.67


def test_unknown_segment(client, analyst_headers):
    res = client.get(f"{API}/segments?segmentBy=planet", headers=analyst_headers)
    assert res.status_code == 400
    assert res.get_json()["error"] == "INVALID_SEGMENT"


def test_performance_against_previous_period(client, analyst_headers, orders):
    data = client.get(f"{API}/performance", headers=analyst_headers).get_json()["data"]
    revenue = data["metrics"]["revenue"]
    assert revenue["current"] == 150.0
    assert revenue["benchmark"] == 80.0
    assert revenue["change"] == 87.5
    assert revenue["trend"] == "up"
    assert data["metrics"]["avgOrderValue"]["current"] == 75.0


def test_json_export(client, analyst_headers, orders):
    res = client.get(f"{API}/export", headers=analyst_headers)
    assert res.status_code == 200
    assert "attachment; filename=revenue-export-" in res.headers["Content-Disposition"]
    body = res.get_json()
    assert body["totalRecords"] == 2
    assert {row["customerEmail"] for row in body["data"]} == {"ann@example.com"}


def test_csv_export(client, admin_headers, orders):
    res = client.get(f"{API}/export?format=csv", headers=admin_headers)
    assert res.mimetype == "text/csv"
    lines = res.get_data(as_text=True).strip().splitlines()
    assert lines[0].startswith("orderNumber,createdAt,status,totalAmount")
    assert len(lines) == 3


def test_overview_summary_breakdown_and_customers(client, analyst_headers, orders):
    data = client.get(f"{API}/overview", headers=analyst_headers).get_json()["data"]

    assert data["summary"] == {"totalRevenue": 150.0, "totalOrders": 2, "avgOrderValue": 75.0}
    assert data["trends"]["revenueGrowth"] == {"currentRevenue": 150.0, "previousRevenue": 80.0, "growth": 87.5}
    assert [(c["_id"], c["revenue"]) for c in data["breakdown"]["byCategory"]] == [("brakes", 100.0), ("filters", 50.0)]
    assert data["breakdown"]["byPaymentMethod"][0]["_id"] == "card"
    assert data["customers"] == {
        "totalCustomers": 1, "newCustomers": 1, "repeatCustomers": 1, "avgCustomerValue": 150.0,
    }


def test_overview_filters_by_shop(client, analyst_headers, orders):
    data = client.get(f"{API}/overview?shopId=south", headers=analyst_headers).get_json()["data"]
    assert data["summary"]["totalRevenue"] == 50.0
    assert data["trends"]["revenueGrowth"]["previousRevenue"] == 0


def test_trends_with_single_bucket(client, analyst_headers, orders):
    data = client.get(f"{API}/trends?period=daily&metric=orders", headers=analyst_headers).get_json()["data"]
    assert len(data["series"]) == 1
    assert data["series"][0]["orders"] == 2
    assert data["analysis"] == {"trend": "insufficient_data", "change": 0, "dataPoints": 1}


def test_trends_rejects_unknown_metric(client, analyst_headers):
    res = client.get(f"{API}/trends?metric=profit", headers=analyst_headers)
    assert res.status_code == 400


def test_forecast_without_history(client, analyst_headers):
    data = client.get(f"{API}/forecast", headers=analyst_headers).get_json()["data"]
    assert data["historical"] == []
    assert data["forecast"] == []
    assert data["averageGrowth"] == 0


def test_forecast_compounds_monthly_growth(client, analyst_headers, orders):
    data = client.get(f"{API}/forecast?months=3", headers=analyst_headers).get_json()["data"]
    assert [h["revenue"] for h in data["historical"]] == [80.0, 150.0]
    assert data["averageGrowth"] == 87.5
    assert len(data["forecast"]) == 3
    first = data["forecast"][0]
    assert first["predictedRevenue"] == 281.25
    assert first["lowerBound"] == 225.0
    assert first["upperBound"] == 337.5


def test_order_at_period_start_is_not_in_benchmark(app, client, analyst_headers):
    def order(total, created_at):
        return {"orderNumber": f"ORD-{total}", "items": [], "totalAmount": total, "status": "delivered",
                "shopId": "north", "createdBy": "ann", "createdAt": created_at}

    with app.app_context():
        db.get_collection(AutoPartOrder.collection_name).insert_many([
            order(100.0, datetime(2024, 3, 1)),
            order(40.0, datetime(2024, 2, 10)),
        ])

    window = "startDate=2024-03-01T00:00:00&endDate=2024-03-31T00:00:00"
    revenue = client.get(f"{API}/performance?{window}", headers=analyst_headers).get_json()["data"]["metrics"]["revenue"]
    assert revenue["current"] == 100.0
    assert revenue["benchmark"] == 40.0

    growth = client.get(f"{API}/overview?{window}", headers=analyst_headers).get_json()["data"]["trends"]["revenueGrowth"]
    assert growth == {"currentRevenue": 100.0, "previousRevenue": 40.0, "growth": 150.0}
