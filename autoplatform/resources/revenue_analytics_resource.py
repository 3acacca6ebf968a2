from flask import g, request
from flask.views import MethodView
from flask_smorest import Blueprint
from pymongo.errors import PyMongoError

from ..schemas.analytics_schema import (
    RevenueExportQuerySchema,
    RevenueForecastQuerySchema,
    RevenueOverviewQuerySchema,
    RevenuePerformanceQuerySchema,
    RevenueSegmentsQuerySchema,
    RevenueTrendsQuerySchema,
)
from ..security.auth import require_role, token_required
from ..services.revenue_analytics_service import RevenueAnalyticsService
from ..utils.export import download_response
from ..utils.helpers import make_log_tag, resolve_window, utcnow
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.rate_limits import crud_read_limiter
from ..constants.service_code import ERROR_MESSAGES, REVENUE_SEGMENTS, ROLES

blp_revenue_analytics = Blueprint("Revenue Analytics", __name__, description="Revenue reporting over orders")

REVENUE_ROLES = (ROLES["ADMIN"], ROLES["MANAGER"], ROLES["ANALYST"])


def _log_tag(resource, method, **extra):
    user = g.get("current_user") or {}
    return make_log_tag("revenue_analytics_resource.py", resource, method, request.remote_addr,
                        user.get("_id"), user.get("role"), **extra)


def _analytics_failed(log_tag, e):
    Log.error(f"{log_tag} aggregation failed: {e}")
    return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                             error="ANALYTICS_FAILED")


@blp_revenue_analytics.route("/overview")
class RevenueOverviewResource(MethodView):

    @token_required
    @require_role(*REVENUE_ROLES)
    @crud_read_limiter("revenue-analytics")
    @blp_revenue_analytics.arguments(RevenueOverviewQuerySchema, location="query")
    @blp_revenue_analytics.doc(summary="Revenue summary, trends, breakdowns and customers",
                               security=[{"Bearer": []}])
    def get(self, args):
        log_tag = _log_tag("RevenueOverviewResource", "get", period=args["period"])
        start_date, end_date = resolve_window(args.get("startDate"), args.get("endDate"))
        try:
            data = RevenueAnalyticsService.overview(
                start_date, end_date, args["period"], args.get("shopId"), args.get("category")
            )
        except PyMongoError as e:
            return _analytics_failed(log_tag, e)
        return prepared_response(True, "OK", data=data)


@blp_revenue_analytics.route("/trends")
class RevenueTrendsResource(MethodView):

    @token_required
    @require_role(*REVENUE_ROLES)
    @crud_read_limiter("revenue-analytics")
    @blp_revenue_analytics.arguments(RevenueTrendsQuerySchema, location="query")
    @blp_revenue_analytics.doc(summary="Bucketed revenue series with trend analysis", security=[{"Bearer": []}])
    def get(self, args):
        log_tag = _log_tag("RevenueTrendsResource", "get", period=args["period"], metric=args["metric"])
        start_date, end_date = resolve_window(args.get("startDate"), args.get("endDate"))
        try:
            data = RevenueAnalyticsService.trends(
                start_date, end_date, args["period"], args["metric"], args.get("shopId"), args.get("category")
            )
        except PyMongoError as e:
            return _analytics_failed(log_tag, e)
        return prepared_response(True, "OK", data=data)


@blp_revenue_analytics.route("/forecast")
class RevenueForecastResource(MethodView):

    @token_required
    @require_role(*REVENUE_ROLES)
    @crud_read_limiter("revenue-analytics")
    @blp_revenue_analytics.arguments(RevenueForecastQuerySchema, location="query")
    @blp_revenue_analytics.doc(summary="Project monthly revenue forward", security=[{"Bearer": []}])
    def get(self, args):
        log_tag = _log_tag("RevenueForecastResource", "get", months=args["months"])
        try:
            data = RevenueAnalyticsService.forecast(args["months"], args["confidence"], args.get("shopId"))
        except PyMongoError as e:
            return _analytics_failed(log_tag, e)
        return prepared_response(True, "OK", data=data)


@blp_revenue_analytics.route("/segments")
class RevenueSegmentsResource(MethodView):

    @token_required
    @require_role(*REVENUE_ROLES)
    @crud_read_limiter("revenue-analytics")
    @blp_revenue_analytics.arguments(RevenueSegmentsQuerySchema, location="query")
    @blp_revenue_analytics.doc(summary="Revenue by category, shop, customer or product", security=[{"Bearer": []}])
    def get(self, args):
        segment_by = args["segmentBy"]
        if segment_by not in REVENUE_SEGMENTS:
            return prepared_response(False, "BAD_REQUEST",
                                     f"segmentBy must be one of: {', '.join(REVENUE_SEGMENTS)}",
                                     error="INVALID_SEGMENT")

        log_tag = _log_tag("RevenueSegmentsResource", "get", segmentBy=segment_by)
        start_date, end_date = resolve_window(args.get("startDate"), args.get("endDate"))
        try:
            data = RevenueAnalyticsService.segments(
                segment_by, start_date, end_date, args.get("shopId"), args.get("category")
            )
        except PyMongoError as e:
            return _analytics_failed(log_tag, e)
        return prepared_response(True, "OK", data=data)


@blp_revenue_analytics.route("/performance")
class RevenuePerformanceResource(MethodView):

    @token_required
    @require_role(*REVENUE_ROLES)
    @crud_read_limiter("revenue-analytics")
    @blp_revenue_analytics.arguments(RevenuePerformanceQuerySchema, location="query")
    @blp_revenue_analytics.doc(summary="Compare the window against a benchmark period", security=[{"Bearer": []}])
    def get(self, args):
        log_tag = _log_tag("RevenuePerformanceResource", "get", benchmark=args["benchmark"])
        start_date, end_date = resolve_window(args.get("startDate"), args.get("endDate"))
        try:
            data = RevenueAnalyticsService.performance(
                start_date, end_date, args["benchmark"], args.get("shopId"), args.get("category")
            )
        except PyMongoError as e:
            return _analytics_failed(log_tag, e)
        return prepared_response(True, "OK", data=data)


@blp_revenue_analytics.route("/export")
class RevenueExportResource(MethodView):

    @token_required
    @require_role(*REVENUE_ROLES)
    @crud_read_limiter("revenue-export", "10 per minute")
    @blp_revenue_analytics.arguments(RevenueExportQuerySchema, location="query")
    @blp_revenue_analytics.doc(summary="Download orders in the window", security=[{"Bearer": []}])
    def get(self, args):
        log_tag = _log_tag("RevenueExportResource", "get", format=args["format"])
        start_date, end_date = resolve_window(args.get("startDate"), args.get("endDate"))
        try:
            rows = RevenueAnalyticsService.export_rows(
                start_date, end_date, args["includeDetails"], args.get("shopId"), args.get("category")
            )
        except PyMongoError as e:
            return _analytics_failed(log_tag, e)

        Log.info(f"{log_tag} exporting {len(rows)} orders")
        payload = {
            "exportedAt": utcnow(),
            "period": {"startDate": start_date, "endDate": end_date},
            "totalRecords": len(rows),
            "data": rows,
        }
        stamp = utcnow().strftime("%Y%m%d%H%M%S")
        return download_response(rows, args["format"], f"revenue-export-{stamp}", payload=payload)
