"""Pure arithmetic behind the revenue and user analytics reports."""

from datetime import datetime

import pytest

from autoplatform.services.analytics_helpers import (
    analyze_segments,
    analyze_trends,
    benchmark_window,
    bucket_label,
    fill_daily_buckets,
    forecast_revenue,
    performance_metrics,
    shift_year,
)
from autoplatform.services.user_analytics_service import classify_engagement


@pytest.mark.parametrize("values, trend", [
    ([100, 120], "increasing"),
    ([100, 90], "decreasing"),
    ([100, 103], "stable"),
    ([100], "insufficient_data"),
])
def test_analyze_trends(values, trend):
    assert analyze_trends(values)["trend"] == trend


def test_trend_from_zero_base_is_stable():
    result = analyze_trends([0, 50])
    assert result["change"] == 0
    assert result["trend"] == "stable"


def test_forecast_compounds_growth():
    history = [
        {"period": "2024-10", "revenue": 100.0},
        {"period": "2024-11", "revenue": 110.0},
        {"period": "2024-12", "revenue": 121.0},
    ]
    result = forecast_revenue(history, months=2, confidence=0.9)

    assert result["averageGrowth"] == 10.0
    first, second = result["forecast"]
    assert first["period"] == "2025-01"
    assert first["predictedRevenue"] == pytest.approx(133.1)
    assert first["lowerBound"] == pytest.approx(119.79)
    assert first["upperBound"] == pytest.approx(146.41)
    assert second["period"] == "2025-02"


def test_forecast_without_history():
    assert forecast_revenue([], months=3) == {"averageGrowth": 0, "forecast": []}


def test_analyze_segments_shares():
    result = analyze_segments([{"_id": "brakes", "revenue": 300}, {"_id": "filters", "revenue": 100}])
    assert result["totalRevenue"] == 400
    assert result["topSegment"]["segment"] == "brakes"
    assert [d["percentage"] for d in result["distribution"]] == [75.0, 25.0]


def test_analyze_segments_empty():
    result = analyze_segments([])
    assert result["topSegment"] is None
    assert result["segmentCount"] == 0


def test_performance_metrics():
    metrics = performance_metrics({"revenue": 150, "orders": 3, "avgOrderValue": 50},
                                  {"revenue": 100, "orders": 3, "avgOrderValue": 0})
    assert metrics["revenue"]["change"] == 50.0
    assert metrics["revenue"]["trend"] == "up"
    assert metrics["orders"]["trend"] == "stable"
    assert metrics["avgOrderValue"]["change"] == 0


def test_benchmark_windows():
    start, end = datetime(2024, 3, 1), datetime(2024, 3, 31)
    assert benchmark_window(start, end, "previous_period") == (datetime(2024, 1, 31), start)
    assert benchmark_window(start, end, "same_period_last_year") == (datetime(2023, 3, 1), datetime(2023, 3, 31))


def test_shift_year_clamps_leap_day():
    assert shift_year(datetime(2024, 2, 29)) == datetime(2023, 2, 28)


def test_bucket_labels():
    assert bucket_label({"year": 2024, "month": 3, "day": 5}, "daily") == "2024-03-05"
    assert bucket_label({"year": 2024, "week": 9}, "weekly") == "2024-W09"
    assert bucket_label({"year": 2024, "month": 3}, "monthly") == "2024-03"
    assert bucket_label({"year": 2024}, "yearly") == "2024"


def test_fill_daily_buckets_zero_fills():
    days = fill_daily_buckets([{"date": "2024-03-02", "count": 4}],
                              datetime(2024, 3, 1, 12), datetime(2024, 3, 3))
    assert days == [
        {"date": "2024-03-01", "count": 0},
        {"date": "2024-03-02", "count": 4},
        {"date": "2024-03-03", "count": 0},
    ]


def test_classify_engagement():
    now = datetime(2024, 6, 30)
    assert classify_engagement(datetime(2024, 6, 25), now) == "active"
    assert classify_engagement(datetime(2024, 6, 10), now) == "at_risk"
    assert classify_engagement(datetime(2024, 4, 1), now) == "inactive"
