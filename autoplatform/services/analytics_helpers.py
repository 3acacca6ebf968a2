"""
Pure helpers shared by the analytics services: date bucketing for
aggregation pipelines and the arithmetic applied to their results.
"""
import calendar
from datetime import datetime, timedelta

PERIOD_KEYS = {
    "daily": ("year", "month", "day"),
    "weekly": ("year", "week"),
    "monthly": ("year", "month"),
    "yearly": ("year",),
}

DATE_OPERATORS = {
    "year": "$year",
    "month": "$month",
    "day": "$dayOfMonth",
    "week": "$week",
}

TREND_THRESHOLD = 5


def period_group_id(period, field="$createdAt"):
    """$group _id that buckets `field` by the given period."""
    return {key: {DATE_OPERATORS[key]: field} for key in PERIOD_KEYS[period]}


def period_sort(period):
    return {f"_id.{key}": 1 for key in PERIOD_KEYS[period]}


def bucket_label(bucket_id, period):
    """Render a bucket _id as 2024-03-05, 2024-W09, 2024-03 or 2024."""
    year = bucket_id.get("year", 0)
    if period == "daily":
        return f"{year:04d}-{bucket_id.get('month', 1):02d}-{bucket_id.get('day', 1):02d}"
    if period == "weekly":
        return f"{year:04d}-W{bucket_id.get('week', 0):02d}"
    if period == "monthly":
        return f"{year:04d}-{bucket_id.get('month', 1):02d}"
    return f"{year:04d}"


def analyze_trends(values):
    """
    Classify a series by its first-to-last change: increasing above +5%,
    decreasing below -5%, stable otherwise.
    """
    if len(values) < 2:
        return {"trend": "insufficient_data", "change": 0, "dataPoints": len(values)}

    first, last = values[0], values[-1]
    change = ((last - first) / first) * 100 if first else 0

    if change > TREND_THRESHOLD:
        trend = "increasing"
    elif change < -TREND_THRESHOLD:
        trend = "decreasing"
    else:
        trend = "stable"

    return {
        "trend": trend,
        "change": round(change, 2),
        "firstValue": first,
        "lastValue": last,
        "dataPoints": len(values),
    }


def average_growth(values):
    """Mean period-over-period % change, skipping steps from a zero base."""
    rates = [
        ((current - previous) / previous) * 100
        for previous, current in zip(values, values[1:])
        if previous > 0
    ]
    if not rates:
        return 0
    return sum(rates) / len(rates)


def add_months(year, month, count):
    index = year * 12 + (month - 1) + count
    return index // 12, index % 12 + 1


def forecast_revenue(history, months=6, confidence=0.8):
    """
    Compound the average monthly growth forward from the last observed month.

    `history` is a chronologically ordered list of {"period": "YYYY-MM",
    "revenue": float}. Each prediction carries a +/- (1 - confidence) band.
    """
    if not history:
        return {"averageGrowth": 0, "forecast": []}

    growth = average_growth([h["revenue"] for h in history])
    last = history[-1]
    year, month = (int(part) for part in last["period"].split("-")[:2])
    base = last["revenue"]

    forecast = []
    for step in range(1, months + 1):
        predicted = base * (1 + growth / 100) ** step
        margin = predicted * (1 - confidence)
        f_year, f_month = add_months(year, month, step)
        forecast.append({
            "period": f"{f_year:04d}-{f_month:02d}",
            "predictedRevenue": round(predicted, 2),
            "lowerBound": round(max(predicted - margin, 0), 2),
            "upperBound": round(predicted + margin, 2),
            "confidence": confidence,
        })

    return {"averageGrowth": round(growth, 2), "forecast": forecast}


def analyze_segments(segments, value_key="revenue"):
    """Share of total per segment; `segments` is already sorted descending."""
    total = sum(s.get(value_key) or 0 for s in segments)
    distribution = [
        {
            "segment": s.get("_id"),
            value_key: s.get(value_key) or 0,
            "percentage": round(((s.get(value_key) or 0) / total) * 100, 2) if total else 0,
        }
        for s in segments
    ]
    return {
        "totalRevenue": round(total, 2),
        "segmentCount": len(segments),
        "topSegment": distribution[0] if distribution else None,
        "distribution": distribution,
    }


def performance_metrics(current, benchmark, keys=("revenue", "orders", "avgOrderValue")):
    """Compare two metric dicts key by key with % change and trend."""
    result = {}
    for key in keys:
        cur = current.get(key) or 0
        prev = benchmark.get(key) or 0
        change = ((cur - prev) / prev) * 100 if prev else 0
        result[key] = {
            "current": round(cur, 2),
            "benchmark": round(prev, 2),
            "change": round(change, 2),
            "trend": "up" if change > 0 else "down" if change < 0 else "stable",
        }
    return result


def shift_year(value, years=-1):
    """Same calendar moment `years` away, clamping Feb 29."""
    target_year = value.year + years
    last_day = calendar.monthrange(target_year, value.month)[1]
    return value.replace(year=target_year, day=min(value.day, last_day))


def benchmark_window(start, end, benchmark):
    """
    Half-open [start, end) window to compare [start, end] against; the
    previous period ends where the current one begins.
    """
    if benchmark == "same_period_last_year":
        return shift_year(start), shift_year(end)
    span = end - start
    return start - span, start


def fill_daily_buckets(rows, start, end, value_key="count"):
    """Return one entry per day in [start, end], zero-filling missing days."""
    by_label = {row["date"]: row.get(value_key, 0) for row in rows}
    days = []
    cursor = datetime(start.year, start.month, start.day)
    while cursor.date() <= end.date():
        label = cursor.strftime("%Y-%m-%d")
        days.append({"date": label, value_key: by_label.get(label, 0)})
        cursor += timedelta(days=1)
    return days
