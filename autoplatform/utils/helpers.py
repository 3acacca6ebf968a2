import math
import re
from datetime import datetime, timedelta, timezone

from bson import ObjectId
from bson.errors import InvalidId


def utcnow():
    """Naive UTC now, matching what pymongo returns for stored dates."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value):
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_datetime(value):
    """
    Parse an ISO-8601 date or datetime string into a naive UTC datetime.

    Raises ValueError for anything that is not ISO-8601.
    """
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Empty date")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    if len(text) == 10:
        return datetime.strptime(text, "%Y-%m-%d")
    return to_naive_utc(datetime.fromisoformat(text))


def make_log_tag(file, resource, method, ip, user_id, role, **kwargs):
    log_tag = (
        f"[{file}]"
        f"[{resource}]"
        f"[{method}]"
        f"[ip:{ip}]"
        f"[user:{user_id}]"
        f"[role:{role}]"
    )

    # Append extra context fields
    for key, value in kwargs.items():
        log_tag += f"[{key}:{value}]"

    return log_tag


def to_object_id(value):
    """Return an ObjectId or None if `value` is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def date_range_filter(field, start_date=None, end_date=None):
    """Build a {field: {$gte, $lte}} clause from optional bounds."""
    clause = {}
    if start_date:
        clause["$gte"] = start_date
    if end_date:
        clause["$lte"] = end_date
    return {field: clause} if clause else {}


def resolve_window(start_date=None, end_date=None, default_days=30):
    """Return (start, end) defaulting to the trailing `default_days`."""
    end = end_date or utcnow()
    start = start_date or (end - timedelta(days=default_days))
    return start, end


def pagination(page, limit, total):
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def paginate_cursor(collection, query, page, limit, sort):
    """Run a paginated find and return (documents, pagination dict)."""
    skip = (page - 1) * limit
    docs = list(collection.find(query).sort(sort).skip(skip).limit(limit))
    total = collection.count_documents(query)
    return docs, pagination(page, limit, total)


def regex_contains(text):
    """Case-insensitive 'contains' match on user supplied text."""
    return {"$regex": re.escape(text), "$options": "i"}


def percentage_change(current, previous):
    if not previous:
        return 0
    return round(((current - previous) / previous) * 100, 2)


def safe_div(numerator, denominator, ndigits=2):
    if not denominator:
        return 0
    return round(numerator / denominator, ndigits)
