# autoplatform/utils/rate_limits.py

from flask import request, g
from flask_limiter.util import get_remote_address

from .extensions import limiter


# ---------- KEY FUNCTIONS ----------

def login_key_func():
    """Rate-limit per email where possible, else fall back to IP."""
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    if email:
        return f"login:{str(email).lower()[:100]}"
    return get_remote_address()


def user_key_func():
    """Rate-limit per authenticated user, falling back to IP."""
    current_user = getattr(g, "current_user", None) or {}
    user_id = current_user.get("_id")
    if user_id is not None:
        return f"user:{user_id}"
    return get_remote_address()


# ---------- AUTH HELPERS ----------

def login_ip_limiter(entity_name: str = "login", limit_str: str = "5 per minute; 30 per hour; 100 per day"):
    """
    Per-IP limit for login and second-factor endpoints.

    Example:
        @login_ip_limiter("2fa-verify")
    """
    return limiter.shared_limit(
        limit_str,
        scope=f"{entity_name}-ip",
        key_func=get_remote_address,
        methods=["POST"],
        error_message=f"Too many {entity_name} attempts from this IP. Please try again later.",
    )


def login_user_limiter(entity_name: str = "login", limit_str: str = "3 per 5 minutes; 10 per hour; 20 per day"):
    """Per-account limit for login endpoints."""
    return limiter.shared_limit(
        limit_str,
        scope=f"{entity_name}-user",
        key_func=login_key_func,
        methods=["POST"],
        error_message=f"Too many {entity_name} attempts for this account. Please try again later.",
    )


def register_rate_limiter(entity_name: str = "register", limit_str: str = "5 per hour; 20 per day"):
    return limiter.shared_limit(
        limit_str,
        scope=f"{entity_name}-ip",
        key_func=get_remote_address,
        methods=["POST"],
        error_message="Too many registration attempts. Please try again later.",
    )


# ---------- CRUD HELPERS ----------

def crud_read_limiter(entity_name: str, limit_str: str = "120 per minute"):
    """
    Generic limiter for READ (GET) operations.

    Example:
        @crud_read_limiter("incident")
    """
    return limiter.shared_limit(
        limit_str,
        scope=f"{entity_name}-read",
        key_func=user_key_func,
        methods=["GET"],
        error_message=f"Too many {entity_name} read requests. Please slow down.",
    )


def crud_write_limiter(entity_name: str, limit_str: str = "30 per minute; 500 per hour"):
    """Generic limiter for WRITE (POST/PUT/PATCH) operations."""
    return limiter.shared_limit(
        limit_str,
        scope=f"{entity_name}-write",
        key_func=user_key_func,
        methods=["POST", "PUT", "PATCH"],
        error_message=f"Too many {entity_name} write requests. Please try again later.",
    )


def crud_delete_limiter(entity_name: str, limit_str: str = "10 per minute; 100 per hour"):
    """Generic limiter for DELETE operations."""
    return limiter.shared_limit(
        limit_str,
        scope=f"{entity_name}-delete",
        key_func=user_key_func,
        methods=["DELETE"],
        error_message=f"Too many {entity_name} delete requests. Please try again later.",
    )
