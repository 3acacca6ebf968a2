from flask import g, request
from flask.views import MethodView
from flask_smorest import Blueprint
from pymongo.errors import PyMongoError
from redis.exceptions import RedisError

from ..models.mobile_model import FeatureFlag, MobileRelease, PushNotification
from ..schemas.mobile_schema import (
    FeatureFlagEvaluateQuerySchema,
    FeatureFlagQuerySchema,
    FeatureFlagSchema,
    FeatureFlagUpdateSchema,
    PushNotificationQuerySchema,
    PushNotificationSchema,
    ReleaseQuerySchema,
    ReleaseSchema,
    ReleaseStatusSchema,
)
from ..security.auth import require_role, token_required
from ..services.mobile_service import PushNotificationService, is_flag_enabled_for, rollout_bucket
from ..utils.helpers import make_log_tag, paginate_cursor, to_object_id, utcnow
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.rate_limits import crud_read_limiter, crud_write_limiter
from ..constants.service_code import ERROR_MESSAGES, ROLES

blp_mobile = Blueprint("Mobile", __name__, description="App releases, push notifications and feature flags")


def _log_tag(resource, method, **extra):
    user = g.get("current_user") or {}
    return make_log_tag("mobile_resource.py", resource, method, request.remote_addr,
                        user.get("_id"), user.get("role"), **extra)


def _invalid_id():
    return prepared_response(False, "BAD_REQUEST", ERROR_MESSAGES["INVALID_ID"], error="INVALID_ID")


# -----------------------RELEASES-----------------------------------------
@blp_mobile.route("/releases")
class ReleaseListResource(MethodView):

    @token_required
    @crud_read_limiter("release")
    @blp_mobile.arguments(ReleaseQuerySchema, location="query")
    @blp_mobile.doc(summary="List app releases", security=[{"Bearer": []}])
    def get(self, args):
        query = {field: args[field] for field in ("platform", "status") if args.get(field)}
        releases = list(
            MobileRelease.get_collection().find(query).sort("createdAt", -1).limit(args["limit"])
        )
        return prepared_response(True, "OK", data={"releases": releases, "total": len(releases)})

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["DEVELOPER"])
    @crud_write_limiter("release")
    @blp_mobile.arguments(ReleaseSchema, location="json")
    @blp_mobile.doc(summary="Create a release", security=[{"Bearer": []}])
    def post(self, release_data):
        log_tag = _log_tag("ReleaseListResource", "post", version=release_data["version"],
                           platform=release_data["platform"])
        collection = MobileRelease.get_collection()
        if collection.find_one({"version": release_data["version"], "platform": release_data["platform"]}):
            return prepared_response(False, "CONFLICT", "Release already exists for this platform",
                                     error="RELEASE_EXISTS")

        try:
            release = MobileRelease(created_by=g.current_user["_id"], **release_data).save()
        except PyMongoError as e:
            Log.error(f"{log_tag} error creating release: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="RELEASE_CREATE_FAILED")

        Log.info(f"{log_tag} release created")
        return prepared_response(True, "CREATED", "Release created successfully", data=release)


@blp_mobile.route("/releases/<string:release_id>/status")
class ReleaseStatusResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["DEVELOPER"])
    @crud_write_limiter("release")
    @blp_mobile.arguments(ReleaseStatusSchema, location="json")
    @blp_mobile.doc(summary="Move a release through draft, testing, published, archived",
                    security=[{"Bearer": []}])
    def put(self, body, release_id):
        log_tag = _log_tag("ReleaseStatusResource", "put", release=release_id, status=body["status"])
        if to_object_id(release_id) is None:
            return _invalid_id()

        release = MobileRelease.get_by_id(release_id)
        if not release:
            return prepared_response(False, "NOT_FOUND", "Release not found", error="RELEASE_NOT_FOUND")

        updates = {"status": body["status"], "statusUpdatedBy": g.current_user["_id"]}
        if body["status"] == "published" and not release.get("publishedAt"):
            updates["publishedAt"] = utcnow()
        MobileRelease.update(release_id, **updates)

        Log.info(f"{log_tag} {release.get('status')} -> {body['status']}")
        return prepared_response(True, "OK", "Release status updated successfully",
                                 data=MobileRelease.get_by_id(release_id))


# -----------------------PUSH NOTIFICATIONS-----------------------------------------
@blp_mobile.route("/notifications")
class PushNotificationListResource(MethodView):

    @token_required
    @crud_read_limiter("push-notification")
    @blp_mobile.arguments(PushNotificationQuerySchema, location="query")
    @blp_mobile.doc(summary="List push notifications", security=[{"Bearer": []}])
    def get(self, args):
        query = {field: args[field] for field in ("type", "status") if args.get(field)}
        notifications, page_info = paginate_cursor(
            PushNotification.get_collection(), query, args["page"], args["limit"], [("createdAt", -1)]
        )
        return prepared_response(True, "OK", data={"notifications": notifications, "pagination": page_info})

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["MARKETING"])
    @crud_write_limiter("push-notification")
    @blp_mobile.arguments(PushNotificationSchema, location="json")
    @blp_mobile.doc(summary="Send or schedule a push notification", security=[{"Bearer": []}])
    def post(self, notification_data):
        log_tag = _log_tag("PushNotificationListResource", "post", type=notification_data["type"])
        scheduled_for = notification_data.get("scheduledFor")
        is_scheduled = bool(scheduled_for and scheduled_for > utcnow())

        try:
            notification = PushNotification(
                created_by=g.current_user["_id"],
                status="scheduled" if is_scheduled else "queued",
                **notification_data,
            ).save()
        except PyMongoError as e:
            Log.error(f"{log_tag} error saving notification: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="NOTIFICATION_CREATE_FAILED")

        try:
            if is_scheduled:
                job_id = PushNotificationService.schedule_delivery(notification["_id"], scheduled_for)
            else:
                job_id = PushNotificationService.enqueue_delivery(notification["_id"])
        except RedisError as e:
            Log.error(f"{log_tag} error queueing delivery: {e}")
            PushNotification.update(notification["_id"], status="failed", failureReason="queue unavailable")
            return prepared_response(False, "SERVICE_UNAVAILABLE", "Notification queue unavailable",
                                     error="QUEUE_UNAVAILABLE")

        PushNotification.update(notification["_id"], jobId=job_id)
        notification["jobId"] = job_id
        if is_scheduled:
            Log.info(f"{log_tag} scheduled for {scheduled_for}")
            return prepared_response(True, "CREATED", "Push notification scheduled", data=notification)
        return prepared_response(True, "CREATED", "Push notification queued for delivery", data=notification)


# -----------------------FEATURE FLAGS-----------------------------------------
@blp_mobile.route("/feature-flags")
class FeatureFlagListResource(MethodView):

    @token_required
    @crud_read_limiter("feature-flag")
    @blp_mobile.arguments(FeatureFlagQuerySchema, location="query")
    @blp_mobile.doc(summary="List feature flags", security=[{"Bearer": []}])
    def get(self, args):
        query = {}
        if args.get("status"):
            query["status"] = args["status"]
        if args.get("platform"):
            query["platform"] = {"$in": [args["platform"], "all"]}
        flags = list(FeatureFlag.get_collection().find(query).sort("name", 1))
        return prepared_response(True, "OK", data={"flags": flags, "total": len(flags)})

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["DEVELOPER"])
    @crud_write_limiter("feature-flag")
    @blp_mobile.arguments(FeatureFlagSchema, location="json")
    @blp_mobile.doc(summary="Create a feature flag", security=[{"Bearer": []}])
    def post(self, flag_data):
        log_tag = _log_tag("FeatureFlagListResource", "post", flag=flag_data["name"])
        if FeatureFlag.get_by_name(flag_data["name"]):
            return prepared_response(False, "CONFLICT", "Feature flag already exists", error="FLAG_EXISTS")

        flag = FeatureFlag(created_by=g.current_user["_id"], **flag_data).save()
        Log.info(f"{log_tag} flag created status={flag['status']} rollout={flag['rolloutPercentage']}")
        return prepared_response(True, "CREATED", "Feature flag created successfully", data=flag)


@blp_mobile.route("/feature-flags/evaluate")
class FeatureFlagEvaluateResource(MethodView):

    @token_required
    @crud_read_limiter("feature-flag", "600 per minute")
    @blp_mobile.arguments(FeatureFlagEvaluateQuerySchema, location="query")
    @blp_mobile.doc(summary="Is a flag on for the current user", security=[{"Bearer": []}])
    def get(self, args):
        flag = FeatureFlag.get_by_name(args["name"])
        if not flag:
            return prepared_response(False, "NOT_FOUND", "Feature flag not found", error="FLAG_NOT_FOUND")

        user_id = g.current_user["_id"]
        return prepared_response(True, "OK", data={
            "name": flag["name"],
            "enabled": is_flag_enabled_for(flag, user_id),
            "status": flag.get("status"),
            "rolloutPercentage": flag.get("rolloutPercentage"),
            "bucket": rollout_bucket(flag["name"], user_id),
        })


@blp_mobile.route("/feature-flags/<string:flag_id>")
class FeatureFlagResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["DEVELOPER"])
    @crud_write_limiter("feature-flag")
    @blp_mobile.arguments(FeatureFlagUpdateSchema, location="json")
    @blp_mobile.doc(summary="Update a feature flag", security=[{"Bearer": []}])
    def put(self, changes, flag_id):
        log_tag = _log_tag("FeatureFlagResource", "put", flag=flag_id)
        if to_object_id(flag_id) is None:
            return _invalid_id()
        if not FeatureFlag.get_by_id(flag_id):
            return prepared_response(False, "NOT_FOUND", "Feature flag not found", error="FLAG_NOT_FOUND")

        FeatureFlag.update(flag_id, updatedBy=g.current_user["_id"], **changes)
        Log.info(f"{log_tag} updated {sorted(changes)}")
        return prepared_response(True, "OK", "Feature flag updated successfully",
                                 data=FeatureFlag.get_by_id(flag_id))
