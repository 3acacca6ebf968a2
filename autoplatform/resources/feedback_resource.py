from flask import g, request
from flask.views import MethodView
from flask_smorest import Blueprint
from pymongo.errors import PyMongoError

from ..models.feedback_model import Feedback
from ..schemas.common_schema import PaginationQuerySchema
from ..schemas.feedback_schema import (
    FeedbackQuerySchema,
    FeedbackResponseSchema,
    FeedbackSchema,
    FeedbackSearchQuerySchema,
    FeedbackStatusSchema,
    FeedbackUpdateSchema,
)
from ..security.auth import is_admin, require_role, token_required
from ..services.feedback_service import FeedbackService
from ..utils.helpers import make_log_tag, paginate_cursor, to_object_id
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.rate_limits import crud_read_limiter, crud_write_limiter
from ..constants.service_code import ERROR_MESSAGES, FEEDBACK_TYPES, ROLES

blp_feedback = Blueprint("Feedback", __name__, description="User feedback")

RESPONDER_ROLES = (ROLES["ADMIN"], ROLES["HEAD_ADMINISTRATOR"], ROLES["MANAGER"])


def _log_tag(resource, method, **extra):
    user = g.get("current_user") or {}
    return make_log_tag("feedback_resource.py", resource, method, request.remote_addr,
                        user.get("_id"), user.get("role"), **extra)


def _load_feedback(feedback_id):
    if to_object_id(feedback_id) is None:
        return None, prepared_response(False, "BAD_REQUEST", ERROR_MESSAGES["INVALID_ID"], error="INVALID_ID")
    feedback = Feedback.get_by_id(feedback_id)
    if not feedback:
        return None, prepared_response(False, "NOT_FOUND", "Feedback not found", error="FEEDBACK_NOT_FOUND")
    return feedback, None


def _can_access(feedback):
    return feedback.get("userId") == g.current_user["_id"] or is_admin(g.current_user)


def _forbidden():
    return prepared_response(False, "FORBIDDEN", "Not authorized to access this feedback", error="UNAUTHORIZED")


def _paginated(query, args, sort=None, log_tag=None):
    try:
        items, page_info = paginate_cursor(
            Feedback.get_collection(), query, args["page"], args["limit"], sort or [("createdAt", -1)]
        )
    except PyMongoError as e:
        Log.error(f"{log_tag} error fetching feedback: {e}")
        return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                 error="FEEDBACK_FETCH_FAILED")
    return prepared_response(True, "OK", data={"feedback": items, "pagination": page_info})


@blp_feedback.route("/")
class FeedbackListResource(MethodView):

    @token_required
    @crud_read_limiter("feedback")
    @blp_feedback.arguments(FeedbackQuerySchema, location="query")
    @blp_feedback.doc(summary="List feedback", security=[{"Bearer": []}])
    def get(self, args):
        query = {field: args[field] for field in ("type", "status", "userId", "category") if args.get(field)}
        # non-admins are limited to their own submissions
        if not is_admin(g.current_user):
            query["userId"] = g.current_user["_id"]
        return _paginated(query, args, log_tag=_log_tag("FeedbackListResource", "get"))

    @token_required
    @crud_write_limiter("feedback")
    @blp_feedback.arguments(FeedbackSchema, location="json")
    @blp_feedback.doc(summary="Submit feedback", security=[{"Bearer": []}])
    def post(self, feedback_data):
        log_tag = _log_tag("FeedbackListResource", "post")
        if not all(feedback_data.get(field) for field in ("type", "subject", "message")):
            return prepared_response(False, "BAD_REQUEST", "Type, subject and message are required",
                                     error="MISSING_REQUIRED_FIELDS")
        if feedback_data["type"] not in FEEDBACK_TYPES:
            return prepared_response(False, "BAD_REQUEST",
                                     f"Type must be one of: {', '.join(FEEDBACK_TYPES)}", error="INVALID_TYPE")

        try:
            feedback = Feedback(
                userId=g.current_user["_id"],
                created_by=g.current_user["_id"],
                **feedback_data,
            ).save()
        except PyMongoError as e:
            Log.error(f"{log_tag} error saving feedback: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="FEEDBACK_CREATE_FAILED")

        Log.info(f"{log_tag} feedback {feedback['feedbackReference']} created")
        return prepared_response(True, "CREATED", "Feedback submitted successfully", data=feedback)


@blp_feedback.route("/<string:feedback_id>")
class FeedbackResource(MethodView):

    @token_required
    @crud_read_limiter("feedback")
    @blp_feedback.doc(summary="Get one feedback item", security=[{"Bearer": []}])
    def get(self, feedback_id):
        feedback, error = _load_feedback(feedback_id)
        if error:
            return error
        if not _can_access(feedback):
            return _forbidden()
        return prepared_response(True, "OK", data=feedback)

    @token_required
    @crud_write_limiter("feedback")
    @blp_feedback.arguments(FeedbackUpdateSchema, location="json")
    @blp_feedback.doc(summary="Edit feedback", security=[{"Bearer": []}])
    def put(self, changes, feedback_id):
        log_tag = _log_tag("FeedbackResource", "put", feedback=feedback_id)
        feedback, error = _load_feedback(feedback_id)
        if error:
            return error
        if not _can_access(feedback):
            Log.info(f"{log_tag} edit denied")
            return _forbidden()
        if not changes:
            return prepared_response(False, "BAD_REQUEST", "No changes to apply", error="UPDATE_FAILED")

        Feedback.update(feedback["_id"], **changes)
        return prepared_response(True, "OK", "Feedback updated successfully", data=Feedback.get_by_id(feedback_id))


@blp_feedback.route("/<string:feedback_id>/status")
class FeedbackStatusResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["MANAGER"])
    @crud_write_limiter("feedback")
    @blp_feedback.arguments(FeedbackStatusSchema, location="json")
    @blp_feedback.doc(summary="Change feedback status", security=[{"Bearer": []}])
    def patch(self, body, feedback_id):
        log_tag = _log_tag("FeedbackStatusResource", "patch", feedback=feedback_id, status=body["status"])
        feedback, error = _load_feedback(feedback_id)
        if error:
            return error

        updates = FeedbackService.status_updates(
            body["status"], g.current_user["_id"], body.get("adminResponse"), body.get("assignedTo")
        )
        Feedback.get_collection().update_one({"_id": feedback["_id"]}, {"$set": updates})
        Log.info(f"{log_tag} {feedback.get('status')} -> {body['status']}")
        return prepared_response(True, "OK", "Feedback status updated successfully",
                                 data=Feedback.get_by_id(feedback_id))


@blp_feedback.route("/<string:feedback_id>/response")
class FeedbackReplyResource(MethodView):

    @token_required
    @crud_write_limiter("feedback")
    @blp_feedback.arguments(FeedbackResponseSchema, location="json")
    @blp_feedback.doc(summary="Reply to feedback", security=[{"Bearer": []}])
    def post(self, body, feedback_id):
        feedback, error = _load_feedback(feedback_id)
        if error:
            return error
        if not _can_access(feedback) and g.current_user.get("role") not in RESPONDER_ROLES:
            return _forbidden()

        is_admin_response = bool(body.get("isAdminResponse")) and g.current_user.get("role") in RESPONDER_ROLES
        response = FeedbackService.add_response(feedback, body["response"], g.current_user, is_admin_response)
        return prepared_response(True, "CREATED", "Response added successfully", data=response)


@blp_feedback.route("/user/<string:user_id>")
class UserFeedbackResource(MethodView):

    @token_required
    @crud_read_limiter("feedback")
    @blp_feedback.arguments(PaginationQuerySchema, location="query")
    @blp_feedback.doc(summary="Feedback submitted by one user", security=[{"Bearer": []}])
    def get(self, args, user_id):
        if user_id != g.current_user["_id"] and not is_admin(g.current_user):
            return _forbidden()
        return _paginated({"userId": user_id}, args, log_tag=_log_tag("UserFeedbackResource", "get"))


@blp_feedback.route("/type/<string:feedback_type>")
class FeedbackByTypeResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["MANAGER"])
    @crud_read_limiter("feedback")
    @blp_feedback.arguments(PaginationQuerySchema, location="query")
    @blp_feedback.doc(summary="Feedback of one type", security=[{"Bearer": []}])
    def get(self, args, feedback_type):
        if feedback_type not in FEEDBACK_TYPES:
            return prepared_response(False, "BAD_REQUEST",
                                     f"Type must be one of: {', '.join(FEEDBACK_TYPES)}", error="INVALID_TYPE")
        return _paginated({"type": feedback_type}, args, log_tag=_log_tag("FeedbackByTypeResource", "get"))


@blp_feedback.route("/open/list")
class OpenFeedbackResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["MANAGER"])
    @crud_read_limiter("feedback")
    @blp_feedback.doc(summary="Open feedback, most urgent first", security=[{"Bearer": []}])
    def get(self):
        items = FeedbackService.open_items()
        return prepared_response(True, "OK", data={"feedback": items, "total": len(items)})


@blp_feedback.route("/stats/overview")
class FeedbackStatsResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["MANAGER"])
    @crud_read_limiter("feedback")
    @blp_feedback.doc(summary="Feedback statistics", security=[{"Bearer": []}])
    def get(self):
        log_tag = _log_tag("FeedbackStatsResource", "get")
        try:
            stats = FeedbackService.stats()
        except PyMongoError as e:
            Log.error(f"{log_tag} error computing stats: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="STATS_FAILED")
        return prepared_response(True, "OK", data=stats)


@blp_feedback.route("/search/query")
class FeedbackSearchResource(MethodView):

    @token_required
    @crud_read_limiter("feedback")
    @blp_feedback.arguments(FeedbackSearchQuerySchema, location="query")
    @blp_feedback.doc(summary="Search feedback text", security=[{"Bearer": []}])
    def get(self, args):
        text = (args.get("q") or "").strip()
        if not text:
            return prepared_response(False, "BAD_REQUEST", "Search query is required", error="MISSING_QUERY")

        query = FeedbackService.search_query(text)
        if not is_admin(g.current_user):
            query["userId"] = g.current_user["_id"]
        return _paginated(query, args, log_tag=_log_tag("FeedbackSearchResource", "get"))
