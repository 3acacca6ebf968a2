# autoplatform/utils/extensions.py

from flask import g, has_request_context, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from .logger import Log


def _client_ip():
    if not has_request_context():
        return "unknown"
    return get_remote_address() or "unknown"


def log_rate_limit_breach(request_limit):
    """on_breach hook: one warning line per rejected request."""
    current_user = g.get("current_user") or {}
    # RateLimitItem renders as e.g. "5 per 1 minute"
    limit = getattr(request_limit, "limit", None)

    Log.warning(
        f"[extensions.py][rate_limit][{_client_ip()}][user:{current_user.get('_id') or 'anonymous'}] "
        f"limit={limit} key={getattr(request_limit, 'key', None)} "
        f"{request.method} {request.path} endpoint={request.endpoint}"
    )


# Storage and the enabled flag come from RATELIMIT_* app config
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per day", "200 per hour"],
    on_breach=log_rate_limit_breach,
)
