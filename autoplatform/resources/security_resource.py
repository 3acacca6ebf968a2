from flask import current_app, g, request
from flask.views import MethodView
from flask_smorest import Blueprint
from pymongo.errors import PyMongoError

from ..extensions.db import db
from ..models.security_model import Session, TwoFactorAuth, UserDevice
from ..schemas.security_schema import TwoFactorTokenSchema
from ..security.auth import revoke_jti, revoke_session, token_required
from ..services.two_factor_service import TwoFactorService
from ..utils.helpers import make_log_tag, to_object_id
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.rate_limits import login_ip_limiter
from ..constants.service_code import AUTHENTICATION_MESSAGES, ERROR_MESSAGES

blp_security = Blueprint("Security", __name__, description="Two-factor authentication, devices and sessions")


def _log_tag(resource, method, **extra):
    user = g.get("current_user") or {}
    return make_log_tag("security_resource.py", resource, method, request.remote_addr,
                        user.get("_id"), user.get("role"), **extra)


# -----------------------TWO FACTOR-----------------------------------------
@blp_security.route("/2fa/setup")
class TwoFactorSetupResource(MethodView):

    @token_required
    @blp_security.doc(summary="Generate a TOTP secret and backup codes", security=[{"Bearer": []}])
    def post(self):
        log_tag = _log_tag("TwoFactorSetupResource", "post")
        record = TwoFactorAuth.get_for_user(g.current_user["_id"])
        if record and record.get("isEnabled"):
            # a new secret only after /2fa/disable, which needs a valid code
            return prepared_response(False, "CONFLICT", "2FA is already enabled", error="2FA_ALREADY_ENABLED")

        try:
            setup = TwoFactorService.setup(g.current_user, current_app.config["TOTP_ISSUER"])
        except PyMongoError as e:
            Log.error(f"{log_tag} error storing secret: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="2FA_SETUP_FAILED")
        return prepared_response(True, "OK", "Scan the QR code and verify a code to enable 2FA", data=setup)


@blp_security.route("/2fa/verify")
class TwoFactorVerifyResource(MethodView):

    @token_required
    @login_ip_limiter("2fa-verify")
    @blp_security.arguments(TwoFactorTokenSchema, location="json")
    @blp_security.doc(summary="Confirm enrolment with a TOTP code", security=[{"Bearer": []}])
    def post(self, body):
        log_tag = _log_tag("TwoFactorVerifyResource", "post")
        if not body.get("token"):
            return prepared_response(False, "BAD_REQUEST", "Token is required", error="MISSING_TOKEN")

        record = TwoFactorAuth.get_for_user(g.current_user["_id"])
        if not record:
            return prepared_response(False, "NOT_FOUND", "2FA not set up", error="2FA_NOT_SETUP")

        if not TwoFactorService.verify_totp(record.get("secret"), body["token"]):
            Log.info(f"{log_tag} invalid code")
            return prepared_response(False, "UNAUTHORIZED", AUTHENTICATION_MESSAGES["INVALID_2FA_TOKEN"],
                                     error="INVALID_2FA_TOKEN")

        TwoFactorAuth.set_enabled(g.current_user["_id"], True)
        Log.info(f"{log_tag} 2FA enabled")
        return prepared_response(True, "OK", "2FA enabled successfully", data={"enabled": True})


@blp_security.route("/2fa/disable")
class TwoFactorDisableResource(MethodView):

    @token_required
    @login_ip_limiter("2fa-disable")
    @blp_security.arguments(TwoFactorTokenSchema, location="json")
    @blp_security.doc(summary="Disable 2FA with a TOTP or backup code", security=[{"Bearer": []}])
    def post(self, body):
        log_tag = _log_tag("TwoFactorDisableResource", "post")
        if not body.get("token"):
            return prepared_response(False, "BAD_REQUEST", "Token is required", error="MISSING_TOKEN")

        if not TwoFactorService.is_enabled(g.current_user["_id"]):
            return prepared_response(False, "NOT_FOUND", "2FA is not enabled", error="2FA_NOT_ENABLED")

        if not TwoFactorService.verify_for_user(g.current_user["_id"], body["token"]):
            return prepared_response(False, "UNAUTHORIZED", AUTHENTICATION_MESSAGES["INVALID_2FA_TOKEN"],
                                     error="INVALID_2FA_TOKEN")

        TwoFactorAuth.set_enabled(g.current_user["_id"], False)
        Log.info(f"{log_tag} 2FA disabled")
        return prepared_response(True, "OK", "2FA disabled successfully", data={"enabled": False})


@blp_security.route("/2fa/status")
class TwoFactorStatusResource(MethodView):

    @token_required
    @blp_security.doc(summary="Two-factor enrolment status", security=[{"Bearer": []}])
    def get(self):
        record = TwoFactorAuth.get_for_user(g.current_user["_id"]) or {}
        return prepared_response(True, "OK", data={
            "isSetup": bool(record),
            "isEnabled": bool(record.get("isEnabled")),
            "backupCodesRemaining": len(record.get("backupCodes") or []),
            "enabledAt": record.get("enabledAt"),
        })


# -----------------------DEVICES-----------------------------------------
@blp_security.route("/devices")
class DeviceListResource(MethodView):

    @token_required
    @blp_security.doc(summary="Devices that have signed in", security=[{"Bearer": []}])
    def get(self):
        devices = UserDevice.list_for_user(g.current_user["_id"])
        return prepared_response(True, "OK", data={"devices": devices, "total": len(devices)})


@blp_security.route("/devices/<string:device_id>")
class DeviceResource(MethodView):

    @token_required
    @blp_security.doc(summary="Forget a device", security=[{"Bearer": []}])
    def delete(self, device_id):
        user_id = g.current_user["_id"]
        result = db.get_collection(UserDevice.collection_name).delete_one({"userId": user_id, "deviceId": device_id})
        if result.deleted_count == 0:
            return prepared_response(False, "NOT_FOUND", "Device not found", error="DEVICE_NOT_FOUND")

        # sessions opened from that device go with it
        sessions = list(db.get_collection(Session.collection_name).find({"userId": user_id, "deviceId": device_id}))
        for session in sessions:
            revoke_session(session)
        db.get_collection(Session.collection_name).delete_many({"userId": user_id, "deviceId": device_id})

        Log.info(f"{_log_tag('DeviceResource', 'delete', device=device_id)} removed, sessions={len(sessions)}")
        return prepared_response(True, "OK", "Device removed successfully")


# -----------------------SESSIONS-----------------------------------------
@blp_security.route("/logout-all-devices")
class LogoutAllDevicesResource(MethodView):

    @token_required
    @blp_security.doc(summary="Revoke every session of the current user", security=[{"Bearer": []}])
    def post(self):
        user_id = g.current_user["_id"]
        sessions_collection = db.get_collection(Session.collection_name)
        sessions = list(sessions_collection.find({"userId": user_id}))

        for session in sessions:
            revoke_session(session)
        # the token used for this request may predate session tracking
        revoke_jti(g.token_payload["jti"], g.token_payload.get("exp"))

        result = sessions_collection.delete_many({"userId": user_id})
        Log.info(f"{_log_tag('LogoutAllDevicesResource', 'post')} revoked {result.deleted_count} sessions")
        return prepared_response(True, "OK", "Logged out from all devices",
                                 data={"sessionsRevoked": result.deleted_count})


@blp_security.route("/sessions")
class SessionListResource(MethodView):

    @token_required
    @blp_security.doc(summary="Active sessions", security=[{"Bearer": []}])
    def get(self):
        current_jti = g.token_payload.get("jti")
        sessions = []
        for session in Session.active_for_user(g.current_user["_id"]):
            session["isCurrent"] = session.get("jti") == current_jti
            session.pop("jti", None)
            session.pop("refreshJti", None)
            sessions.append(session)
        return prepared_response(True, "OK", data={"sessions": sessions, "total": len(sessions)})


@blp_security.route("/sessions/<string:session_id>")
class SessionResource(MethodView):

    @token_required
    @blp_security.doc(summary="Revoke one session", security=[{"Bearer": []}])
    def delete(self, session_id):
        object_id = to_object_id(session_id)
        if object_id is None:
            return prepared_response(False, "BAD_REQUEST", ERROR_MESSAGES["INVALID_ID"], error="INVALID_ID")

        collection = db.get_collection(Session.collection_name)
        session = collection.find_one({"_id": object_id, "userId": g.current_user["_id"]})
        if not session:
            return prepared_response(False, "NOT_FOUND", "Session not found", error="SESSION_NOT_FOUND")

        revoke_session(session)
        collection.delete_one({"_id": object_id})
        return prepared_response(True, "OK", "Session revoked successfully")