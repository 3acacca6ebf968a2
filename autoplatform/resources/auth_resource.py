import jwt
from flask import current_app, g, request
from flask.views import MethodView
from flask_smorest import Blueprint
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..models.security_model import Session, UserDevice
from ..models.user_model import User
from ..schemas.auth_schema import LoginSchema, RefreshTokenSchema, RegisterSchema
from ..security.auth import (
    create_token, decode_token, epoch_seconds, is_admin, is_revoked, revoke_jti, revoke_session, token_required,
)
from ..services.two_factor_service import TwoFactorService
from ..utils.helpers import make_log_tag
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.rate_limits import login_ip_limiter, login_user_limiter, register_rate_limiter
from ..constants.service_code import AUTHENTICATION_MESSAGES, ERROR_MESSAGES, ROLES

blp_auth = Blueprint("Auth", __name__, description="Authentication")


def _optional_current_user():
    """Resolve a bearer token if one is present, without requiring it."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    try:
        data = decode_token(auth_header.split(None, 1)[1])
    except jwt.InvalidTokenError:
        return None
    if data.get("type") != "access" or is_revoked(data.get("jti")):
        return None
    return User.get_by_id(data.get("user_id"))


def issue_session(user, device_id=None):
    """Create access + refresh tokens and record the session."""
    access_token, access_payload = create_token(user, "access")
    refresh_token, refresh_payload = create_token(user, "refresh")

    Session(
        user_id=user["_id"],
        jti=access_payload["jti"],
        access_expires_at=access_payload["exp"],
        refresh_jti=refresh_payload["jti"],
        refresh_expires_at=refresh_payload["exp"],
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
        device_id=device_id,
    ).save()

    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "Bearer",
        "expires_in": current_app.config["JWT_ACCESS_TTL_MINUTES"] * 60,
    }


@blp_auth.route("/register")
class RegisterResource(MethodView):

    @register_rate_limiter()
    @blp_auth.arguments(RegisterSchema, location="json")
    @blp_auth.doc(summary="Create an account")
    def post(self, user_data):
        client_ip = request.remote_addr
        log_tag = make_log_tag("auth_resource.py", "RegisterResource", "post", client_ip, None, None,
                               email=user_data["email"])

        # Only administrators may hand out elevated roles
        requested_role = user_data.get("role") or ROLES["USER"]
        if requested_role != ROLES["USER"] and not is_admin(_optional_current_user()):
            requested_role = ROLES["USER"]

        if User.get_by_email(user_data["email"]):
            Log.info(f"{log_tag} email already registered")
            return prepared_response(False, "CONFLICT", "User with this email already exists", error="USER_EXISTS")

        try:
            user = User(
                name=user_data["name"],
                email=user_data["email"],
                password=user_data["password"],
                role=requested_role,
                location=user_data.get("location"),
            ).save()
        except DuplicateKeyError:
            return prepared_response(False, "CONFLICT", "User with this email already exists", error="USER_EXISTS")
        except PyMongoError as e:
            Log.error(f"{log_tag} error creating user: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="REGISTRATION_FAILED")

        Log.info(f"{log_tag} user created with role {requested_role}")
        return prepared_response(True, "CREATED", "User registered successfully", data=User.public(user))


@blp_auth.route("/login")
class LoginResource(MethodView):

    @login_ip_limiter("login")
    @login_user_limiter("login")
    @blp_auth.arguments(LoginSchema, location="json")
    @blp_auth.doc(summary="Exchange credentials for tokens")
    def post(self, credentials):
        client_ip = request.remote_addr
        log_tag = make_log_tag("auth_resource.py", "LoginResource", "post", client_ip, None, None,
                               email=credentials["email"])

        user = User.get_by_email(credentials["email"])
        if not user or not User.check_password(user, credentials["password"]):
            Log.info(f"{log_tag} invalid credentials")
            return prepared_response(False, "UNAUTHORIZED", AUTHENTICATION_MESSAGES["INVALID_CREDENTIALS"],
                                     error="INVALID_CREDENTIALS")

        if user.get("status", "active") != "active":
            return prepared_response(False, "FORBIDDEN", AUTHENTICATION_MESSAGES["ACCOUNT_INACTIVE"],
                                     error="ACCOUNT_INACTIVE")

        if TwoFactorService.is_enabled(user["_id"]):
            code = credentials.get("totp_code")
            if not code:
                return prepared_response(False, "UNAUTHORIZED", AUTHENTICATION_MESSAGES["TWO_FACTOR_REQUIRED"],
                                         error="TWO_FACTOR_REQUIRED")
            if not TwoFactorService.verify_for_user(user["_id"], code):
                Log.info(f"{log_tag} invalid second factor")
                return prepared_response(False, "UNAUTHORIZED", AUTHENTICATION_MESSAGES["INVALID_2FA_TOKEN"],
                                         error="INVALID_2FA_TOKEN")

        try:
            tokens = issue_session(user, credentials.get("deviceId"))
            User.touch_last_login(user["_id"])
            if credentials.get("deviceId"):
                UserDevice.upsert(
                    user["_id"],
                    credentials["deviceId"],
                    device_name=credentials.get("deviceName"),
                    platform=credentials.get("platform"),
                    ip_address=client_ip,
                    user_agent=request.headers.get("User-Agent"),
                )
        except PyMongoError as e:
            Log.error(f"{log_tag} error creating session: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="LOGIN_FAILED")

        Log.info(f"{log_tag} login successful")
        return prepared_response(True, "OK", "Login successful", data={**tokens, "user": User.public(user)})


@blp_auth.route("/refresh")
class RefreshResource(MethodView):

    @blp_auth.arguments(RefreshTokenSchema, location="json")
    @blp_auth.doc(summary="Exchange a refresh token for a new access token")
    def post(self, body):
        try:
            data = decode_token(body["refresh_token"])
        except jwt.ExpiredSignatureError:
            return prepared_response(False, "UNAUTHORIZED", AUTHENTICATION_MESSAGES["TOKEN_EXPIRED"],
                                     error="TOKEN_EXPIRED")
        except jwt.InvalidTokenError:
            return prepared_response(False, "UNAUTHORIZED", AUTHENTICATION_MESSAGES["INVALID_TOKEN"],
                                     error="INVALID_TOKEN")

        if data.get("type") != "refresh" or is_revoked(data.get("jti")):
            return prepared_response(False, "UNAUTHORIZED", AUTHENTICATION_MESSAGES["INVALID_TOKEN"],
                                     error="INVALID_TOKEN")

        user = User.get_by_id(data.get("user_id"))
        if not user or user.get("status", "active") != "active":
            return prepared_response(False, "UNAUTHORIZED", AUTHENTICATION_MESSAGES["INVALID_TOKEN"],
                                     error="INVALID_TOKEN")

        # the refresh token only works while its session exists
        session = Session.get_by_refresh_jti(data["jti"])
        if session is None:
            return prepared_response(False, "UNAUTHORIZED", AUTHENTICATION_MESSAGES["TOKEN_REVOKED"],
                                     error="TOKEN_REVOKED")

        access_token, payload = create_token(user, "access")
        revoke_jti(session["jti"], epoch_seconds(session.get("accessExpiresAt")))
        Session.rotate_access(session["_id"], payload["jti"], payload["exp"])

        return prepared_response(True, "OK", "Token refreshed", data={
            "access_token": access_token,
            "token_type": "Bearer",
            "expires_in": current_app.config["JWT_ACCESS_TTL_MINUTES"] * 60,
        })


@blp_auth.route("/logout")
class LogoutResource(MethodView):

    @token_required
    @blp_auth.doc(summary="Revoke the current access token", security=[{"Bearer": []}])
    def post(self):
        payload = g.token_payload
        revoke_jti(payload["jti"], payload.get("exp"))
        session = Session.get_by_jti(payload["jti"])
        if session is not None:
            revoke_session(session)
            Session.delete_by_jti(payload["jti"])
        Log.info(f"[auth_resource.py][LogoutResource][post][user:{g.current_user['_id']}] token revoked")
        return prepared_response(True, "OK", "Logged out successfully")


@blp_auth.route("/me")
class MeResource(MethodView):

    @token_required
    @blp_auth.doc(summary="Current user profile", security=[{"Bearer": []}])
    def get(self):
        data = dict(g.current_user)
        data["twoFactorEnabled"] = TwoFactorService.is_enabled(data["_id"])
        return prepared_response(True, "OK", data=data)
