import calendar
import time
import uuid
from datetime import timedelta
from functools import wraps

import jwt
from flask import current_app, g, request

from ..extensions.db import redis_connection
from ..models.user_model import User
from ..utils.helpers import utcnow
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..constants.service_code import AUTHENTICATION_MESSAGES, SUPER_ROLES

BLOCKLIST_PREFIX = "jwt:blocklist:"


def _secret():
    return current_app.config["SECRET_KEY"]


def create_token(user, token_type="access"):
    """
    Encode an HS256 JWT for `user`. Returns (token, payload).
    """
    now = utcnow()
    if token_type == "refresh":
        expires = now + timedelta(days=current_app.config["JWT_REFRESH_TTL_DAYS"])
    else:
        expires = now + timedelta(minutes=current_app.config["JWT_ACCESS_TTL_MINUTES"])

    payload = {
        "user_id": str(user["_id"]),
        "role": user.get("role"),
        "type": token_type,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": expires,
    }
    token = jwt.encode(payload, _secret(), algorithm="HS256")
    return token, payload


def decode_token(token):
    """Raises jwt.ExpiredSignatureError / jwt.InvalidTokenError."""
    return jwt.decode(token, _secret(), algorithms=["HS256"])


def revoke_jti(jti, expires_at_epoch):
    """Blocklist a token id until its natural expiry."""
    ttl = int(expires_at_epoch - time.time()) if expires_at_epoch else 0
    if ttl <= 0:
        ttl = 1
    redis_connection.get_connection().setex(f"{BLOCKLIST_PREFIX}{jti}", ttl, "1")


def is_revoked(jti):
    return bool(redis_connection.get_connection().exists(f"{BLOCKLIST_PREFIX}{jti}"))


def epoch_seconds(value):
    """Stored expiries are naive UTC datetimes."""
    if value is None:
        return None
    return calendar.timegm(value.utctimetuple())


def revoke_session(session):
    """Blocklist both the access and the refresh token of a stored session."""
    revoke_jti(session["jti"], epoch_seconds(session.get("accessExpiresAt")))
    if session.get("refreshJti"):
        revoke_jti(session["refreshJti"], epoch_seconds(session.get("expiresAt")))


def _unauthorized(code):
    return prepared_response(False, "UNAUTHORIZED", AUTHENTICATION_MESSAGES.get(code, code), error=code)


def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get("Authorization")
        log_tag = f"[auth.py][token_required][{request.remote_addr}]"

        if not auth_header or not auth_header.startswith("Bearer "):
            return _unauthorized("AUTHENTICATION_REQUIRED")

        token = auth_header.split(None, 1)[1].strip()

        try:
            data = decode_token(token)
        except jwt.ExpiredSignatureError:
            return _unauthorized("TOKEN_EXPIRED")
        except jwt.InvalidTokenError as e:
            Log.info(f"{log_tag} invalid token: {e}")
            return _unauthorized("INVALID_TOKEN")

        if data.get("type") != "access":
            return _unauthorized("INVALID_TOKEN")

        if is_revoked(data.get("jti")):
            return _unauthorized("TOKEN_REVOKED")

        user = User.get_by_id(data.get("user_id"))
        if user is None:
            return _unauthorized("INVALID_TOKEN")

        if user.get("status", "active") != "active":
            return prepared_response(False, "UNAUTHORIZED", AUTHENTICATION_MESSAGES["ACCOUNT_INACTIVE"],
                                     error="ACCOUNT_INACTIVE")

        g.current_user = User.public(user)
        g.token_payload = data

        return f(*args, **kwargs)
    return decorated


def require_role(*roles):
    """
    Allow the request through when the current user's role is one of `roles`.
    admin and head_administrator always pass.
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            user = g.get("current_user")
            if not user:
                return _unauthorized("AUTHENTICATION_REQUIRED")

            role = user.get("role")
            if role not in roles and role not in SUPER_ROLES:
                Log.info(f"[auth.py][require_role][user:{user.get('_id')}] role {role} not in {roles}")
                return prepared_response(False, "FORBIDDEN", AUTHENTICATION_MESSAGES["INSUFFICIENT_PERMISSIONS"],
                                         error="INSUFFICIENT_PERMISSIONS")
            return f(*args, **kwargs)
        return decorated
    return decorator


def is_admin(user):
    return (user or {}).get("role") in SUPER_ROLES
