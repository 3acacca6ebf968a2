from flask import g, request
from flask.views import MethodView
from flask_smorest import Blueprint
from pymongo.errors import PyMongoError

from ..schemas.analytics_schema import TrackActivitySchema, UserExportQuerySchema
from ..schemas.common_schema import DateRangeQuerySchema
from ..security.auth import require_role, token_required
from ..services.user_analytics_service import UserAnalyticsService
from ..utils.export import download_response
from ..utils.helpers import make_log_tag, resolve_window, to_object_id, utcnow
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.rate_limits import crud_read_limiter, crud_write_limiter
from ..constants.service_code import ERROR_MESSAGES, ROLES

blp_user_analytics = Blueprint("User Analytics", __name__, description="User growth, behaviour and engagement")


def _log_tag(resource, method, **extra):
    user = g.get("current_user") or {}
    return make_log_tag("user_analytics_resource.py", resource, method, request.remote_addr,
                        user.get("_id"), user.get("role"), **extra)


def _analytics_failed(log_tag, e):
    Log.error(f"{log_tag} aggregation failed: {e}")
    return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                             error="ANALYTICS_FAILED")


@blp_user_analytics.route("/overview")
class UserOverviewResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["ANALYST"])
    @crud_read_limiter("user-analytics")
    @blp_user_analytics.arguments(DateRangeQuerySchema, location="query")
    @blp_user_analytics.doc(summary="User totals, growth and retention", security=[{"Bearer": []}])
    def get(self, args):
        log_tag = _log_tag("UserOverviewResource", "get")
        start_date, end_date = resolve_window(args.get("startDate"), args.get("endDate"))
        try:
            data = UserAnalyticsService.overview(start_date, end_date)
        except PyMongoError as e:
            return _analytics_failed(log_tag, e)
        data["period"] = {"startDate": start_date, "endDate": end_date}
        return prepared_response(True, "OK", data=data)


@blp_user_analytics.route("/behavior")
class UserBehaviorResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["ANALYST"])
    @crud_read_limiter("user-analytics")
    @blp_user_analytics.arguments(DateRangeQuerySchema, location="query")
    @blp_user_analytics.doc(summary="Activity patterns", security=[{"Bearer": []}])
    def get(self, args):
        log_tag = _log_tag("UserBehaviorResource", "get")
        start_date, end_date = resolve_window(args.get("startDate"), args.get("endDate"))
        try:
            data = UserAnalyticsService.behavior(start_date, end_date)
        except PyMongoError as e:
            return _analytics_failed(log_tag, e)
        data["period"] = {"startDate": start_date, "endDate": end_date}
        return prepared_response(True, "OK", data=data)


@blp_user_analytics.route("/engagement")
class UserEngagementResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["ANALYST"])
    @crud_read_limiter("user-analytics")
    @blp_user_analytics.doc(summary="Active users, engagement scores, churn and lifetime value",
                            security=[{"Bearer": []}])
    def get(self):
        log_tag = _log_tag("UserEngagementResource", "get")
        try:
            data = UserAnalyticsService.engagement()
        except PyMongoError as e:
            return _analytics_failed(log_tag, e)
        return prepared_response(True, "OK", data=data)


@blp_user_analytics.route("/track")
class TrackActivityResource(MethodView):

    @token_required
    @crud_write_limiter("activity", "120 per minute; 5000 per hour")
    @blp_user_analytics.arguments(TrackActivitySchema, location="json")
    @blp_user_analytics.doc(summary="Record a user activity", security=[{"Bearer": []}])
    def post(self, activity_data):
        log_tag = _log_tag("TrackActivityResource", "post", type=activity_data["type"])
        try:
            activity = UserAnalyticsService.track(
                g.current_user["_id"],
                {**activity_data, "timestamp": utcnow()},
                user_agent=request.headers.get("User-Agent"),
                ip_address=request.remote_addr,
            )
        except PyMongoError as e:
            Log.error(f"{log_tag} error recording activity: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="TRACK_FAILED")
        return prepared_response(True, "CREATED", "Activity tracked successfully", data=activity)


@blp_user_analytics.route("/user/<string:user_id>")
class UserDetailResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["ANALYST"])
    @crud_read_limiter("user-analytics")
    @blp_user_analytics.doc(summary="Activity profile of a single user", security=[{"Bearer": []}])
    def get(self, user_id):
        log_tag = _log_tag("UserDetailResource", "get", target=user_id)
        if to_object_id(user_id) is None:
            return prepared_response(False, "BAD_REQUEST", ERROR_MESSAGES["INVALID_ID"], error="INVALID_ID")
        try:
            detail = UserAnalyticsService.user_detail(user_id)
        except PyMongoError as e:
            return _analytics_failed(log_tag, e)
        if detail is None:
            return prepared_response(False, "NOT_FOUND", "User not found", error="USER_NOT_FOUND")
        return prepared_response(True, "OK", data=detail)


@blp_user_analytics.route("/export")
class UserActivityExportResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"])
    @crud_read_limiter("user-analytics-export", "10 per minute")
    @blp_user_analytics.arguments(UserExportQuerySchema, location="query")
    @blp_user_analytics.doc(summary="Download user activities", security=[{"Bearer": []}])
    def get(self, args):
        log_tag = _log_tag("UserActivityExportResource", "get", format=args["format"])
        try:
            rows = UserAnalyticsService.export_rows(args.get("startDate"), args.get("endDate"), args["limit"])
        except PyMongoError as e:
            return _analytics_failed(log_tag, e)

        Log.info(f"{log_tag} exporting {len(rows)} activities")
        stamp = utcnow().strftime("%Y%m%d%H%M%S")
        return download_response(rows, args["format"], f"user-activities-{stamp}")
