import queue

from flask import Response, current_app, g, request, stream_with_context
from flask.views import MethodView
from flask_smorest import Blueprint

from ..models.notification_model import DeviceToken, Notification
from ..schemas.realtime_schema import (
    BroadcastSchema,
    MarkReadSchema,
    NotificationQuerySchema,
    RegisterDeviceSchema,
    UnregisterDeviceSchema,
)
from ..security.auth import require_role, token_required
from ..services.event_broker import broker, format_sse
from ..utils.helpers import make_log_tag, to_object_id, utcnow
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.rate_limits import crud_read_limiter, crud_write_limiter
from ..constants.service_code import ROLES

blp_realtime = Blueprint("Realtime", __name__, description="Server-sent events and in-app notifications")


def _log_tag(resource, method, **extra):
    user = g.get("current_user") or {}
    return make_log_tag("realtime_resource.py", resource, method, request.remote_addr,
                        user.get("_id"), user.get("role"), **extra)


@blp_realtime.route("/events")
class EventStreamResource(MethodView):

    @token_required
    @blp_realtime.doc(summary="Subscribe to server-sent events", security=[{"Bearer": []}])
    def get(self):
        user = g.current_user
        keepalive = current_app.config.get("SSE_KEEPALIVE_SECONDS", 30)
        subscriber = broker.subscribe(user["_id"], user.get("role"))

        def stream():
            try:
                yield format_sse("connected", {
                    "subscriberId": subscriber.id,
                    "userId": user["_id"],
                    "timestamp": utcnow(),
                })
                while True:
                    try:
                        yield subscriber.queue.get(timeout=keepalive)
                    except queue.Empty:
                        yield ": keep-alive\n\n"
            finally:
                broker.unsubscribe(subscriber.id)

        return Response(
            stream_with_context(stream()),
            mimetype="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )


@blp_realtime.route("/broadcast")
class BroadcastResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["MANAGER"])
    @crud_write_limiter("broadcast")
    @blp_realtime.arguments(BroadcastSchema, location="json")
    @blp_realtime.doc(summary="Push an event to connected clients", security=[{"Bearer": []}])
    def post(self, body):
        delivered = broker.publish(body["event"], body["data"], body.get("userIds"), body.get("roles"))
        Log.info(f"{_log_tag('BroadcastResource', 'post', event=body['event'])} delivered to {delivered}")
        return prepared_response(True, "OK", "Event broadcast", data={"event": body["event"], "delivered": delivered})


@blp_realtime.route("/connections")
class ConnectionsResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"])
    @blp_realtime.doc(summary="Connected subscriber statistics", security=[{"Bearer": []}])
    def get(self):
        return prepared_response(True, "OK", data=broker.stats())


@blp_realtime.route("/notifications/register-device")
class RegisterDeviceResource(MethodView):

    @token_required
    @crud_write_limiter("device-token")
    @blp_realtime.arguments(RegisterDeviceSchema, location="json")
    @blp_realtime.doc(summary="Register a push token", security=[{"Bearer": []}])
    def post(self, body):
        if not body.get("token") or body.get("deviceInfo") is None:
            return prepared_response(False, "BAD_REQUEST", "Token and device info are required",
                                     error="MISSING_DEVICE_INFO")

        DeviceToken.register(g.current_user["_id"], body["token"], body["deviceInfo"])
        Log.info(f"{_log_tag('RegisterDeviceResource', 'post')} device token registered")
        return prepared_response(True, "OK", "Device registered successfully")


@blp_realtime.route("/notifications/unregister-device")
class UnregisterDeviceResource(MethodView):

    @token_required
    @crud_write_limiter("device-token")
    @blp_realtime.arguments(UnregisterDeviceSchema, location="json")
    @blp_realtime.doc(summary="Deactivate a push token", security=[{"Bearer": []}])
    def post(self, body):
        if not body.get("token"):
            return prepared_response(False, "BAD_REQUEST", "Token is required", error="MISSING_TOKEN")

        if not DeviceToken.unregister(g.current_user["_id"], body["token"]):
            return prepared_response(False, "NOT_FOUND", "Device not found", error="DEVICE_NOT_FOUND")
        return prepared_response(True, "OK", "Device unregistered successfully")


@blp_realtime.route("/notifications")
class NotificationInboxResource(MethodView):

    @token_required
    @crud_read_limiter("notification")
    @blp_realtime.arguments(NotificationQuerySchema, location="query")
    @blp_realtime.doc(summary="The current user's notifications", security=[{"Bearer": []}])
    def get(self, args):
        user_id = g.current_user["_id"]
        query = {"userId": user_id}
        for field in ("status", "type"):
            if args.get(field):
                query[field] = args[field]

        collection = Notification.get_collection()
        notifications = list(
            collection.find(query).sort("createdAt", -1).skip(args["offset"]).limit(args["limit"])
        )
        return prepared_response(True, "OK", data={
            "notifications": notifications,
            "total": collection.count_documents(query),
            "unread": collection.count_documents({"userId": user_id, "status": "unread"}),
            "limit": args["limit"],
            "offset": args["offset"],
        })


@blp_realtime.route("/notifications/mark-read")
class MarkReadResource(MethodView):

    @token_required
    @crud_write_limiter("notification")
    @blp_realtime.arguments(MarkReadSchema, location="json")
    @blp_realtime.doc(summary="Mark notifications as read", security=[{"Bearer": []}])
    def put(self, body):
        ids = body.get("notificationIds")
        object_ids = [to_object_id(i) for i in ids or []]
        if not ids or any(oid is None for oid in object_ids):
            return prepared_response(False, "BAD_REQUEST", "notificationIds must be a list of ids",
                                     error="INVALID_NOTIFICATION_IDS")

        # scoped to the caller so nobody can mark another user's inbox
        result = Notification.get_collection().update_many(
            {"_id": {"$in": object_ids}, "userId": g.current_user["_id"]},
            {"$set": {"status": "read", "readAt": utcnow(), "updatedAt": utcnow()}},
        )
        return prepared_response(True, "OK", "Notifications marked as read",
                                 data={"modifiedCount": result.modified_count})
