from flask import g, request
from flask.views import MethodView
from flask_smorest import Blueprint
from pymongo.errors import PyMongoError

from ..models.incident_model import Incident
from ..schemas.incident_schema import (
    IncidentAssignSchema,
    IncidentCommentSchema,
    IncidentMetricsQuerySchema,
    IncidentQuerySchema,
    IncidentSchema,
    IncidentStatusSchema,
    IncidentUpdateSchema,
)
from ..security.auth import require_role, token_required
from ..services.event_broker import broker
from ..services.incident_service import IncidentService
from ..utils.helpers import make_log_tag, paginate_cursor, to_object_id
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.rate_limits import crud_delete_limiter, crud_read_limiter, crud_write_limiter
from ..constants.service_code import ERROR_MESSAGES, INCIDENT_STATUSES, ROLES

blp_incidents = Blueprint("Incidents", __name__, description="Incident reporting and tracking")


def _log_tag(resource, method, **extra):
    user = g.get("current_user") or {}
    return make_log_tag("incidents_resource.py", resource, method, request.remote_addr,
                        user.get("_id"), user.get("role"), **extra)


def _load_incident(incident_id):
    """Returns (incident, error_response)."""
    if to_object_id(incident_id) is None:
        return None, prepared_response(False, "BAD_REQUEST", ERROR_MESSAGES["INVALID_ID"], error="INVALID_ID")
    incident = Incident.get_by_id(incident_id)
    if not incident:
        return None, prepared_response(False, "NOT_FOUND", "Incident not found", error="INCIDENT_NOT_FOUND")
    return incident, None


@blp_incidents.route("/")
class IncidentListResource(MethodView):

    @crud_read_limiter("incident")
    @blp_incidents.arguments(IncidentQuerySchema, location="query")
    @blp_incidents.doc(summary="List incidents")
    def get(self, args):
        log_tag = _log_tag("IncidentListResource", "get")
        try:
            incidents, page_info = paginate_cursor(
                Incident.get_collection(),
                IncidentService.list_query(args),
                args["page"],
                args["limit"],
                [("createdAt", -1)],
            )
        except PyMongoError as e:
            Log.error(f"{log_tag} error fetching incidents: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="INCIDENT_FETCH_FAILED")
        return prepared_response(True, "OK", data={"incidents": incidents, "pagination": page_info})

    @token_required
    @crud_write_limiter("incident")
    @blp_incidents.arguments(IncidentSchema, location="json")
    @blp_incidents.doc(summary="Report an incident", security=[{"Bearer": []}])
    def post(self, incident_data):
        log_tag = _log_tag("IncidentListResource", "post")
        try:
            incident = Incident(created_by=g.current_user["_id"], **incident_data).save()
        except PyMongoError as e:
            Log.error(f"{log_tag} error creating incident: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="INCIDENT_CREATE_FAILED")

        Log.info(f"{log_tag} incident {incident['_id']} created priority={incident['priority']}")
        broker.publish(
            "incident.created",
            {"incidentId": incident["_id"], "title": incident["title"],
             "priority": incident["priority"], "severity": incident["severity"]},
            roles=[ROLES["ADMIN"], ROLES["MANAGER"]],
        )
        return prepared_response(True, "CREATED", "Incident created successfully", data=incident)


@blp_incidents.route("/metrics")
class IncidentMetricsResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["MANAGER"])
    @crud_read_limiter("incident")
    @blp_incidents.arguments(IncidentMetricsQuerySchema, location="query")
    @blp_incidents.doc(summary="Incident counts and resolution times", security=[{"Bearer": []}])
    def get(self, args):
        log_tag = _log_tag("IncidentMetricsResource", "get")
        try:
            metrics = IncidentService.metrics(args.get("startDate"), args.get("endDate"))
        except PyMongoError as e:
            Log.error(f"{log_tag} error computing metrics: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="METRICS_FAILED")
        return prepared_response(True, "OK", data=metrics)


@blp_incidents.route("/<string:incident_id>")
class IncidentResource(MethodView):

    @crud_read_limiter("incident")
    @blp_incidents.doc(summary="Get one incident")
    def get(self, incident_id):
        incident, error = _load_incident(incident_id)
        if error:
            return error
        return prepared_response(True, "OK", data=incident)

    @token_required
    @crud_write_limiter("incident")
    @blp_incidents.arguments(IncidentUpdateSchema, location="json")
    @blp_incidents.doc(summary="Update an incident", security=[{"Bearer": []}])
    def put(self, changes, incident_id):
        log_tag = _log_tag("IncidentResource", "put", incident=incident_id)
        if "status" in changes and changes["status"] not in INCIDENT_STATUSES:
            return prepared_response(False, "BAD_REQUEST",
                                     f"Status must be one of: {', '.join(INCIDENT_STATUSES)}", error="INVALID_STATUS")

        incident, error = _load_incident(incident_id)
        if error:
            return error

        try:
            changed = IncidentService.apply_update(incident, changes, g.current_user["_id"])
        except PyMongoError as e:
            Log.error(f"{log_tag} error updating incident: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="INCIDENT_UPDATE_FAILED")

        Log.info(f"{log_tag} changed={changed}")
        return prepared_response(True, "OK", "Incident updated successfully", data=Incident.get_by_id(incident_id))

    @token_required
    @require_role(ROLES["ADMIN"])
    @crud_delete_limiter("incident")
    @blp_incidents.doc(summary="Delete an incident", security=[{"Bearer": []}])
    def delete(self, incident_id):
        log_tag = _log_tag("IncidentResource", "delete", incident=incident_id)
        incident, error = _load_incident(incident_id)
        if error:
            return error

        Incident.delete(incident["_id"])
        Log.info(f"{log_tag} incident deleted")
        return prepared_response(True, "OK", "Incident deleted successfully")


@blp_incidents.route("/<string:incident_id>/assign")
class IncidentAssignResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["MANAGER"])
    @crud_write_limiter("incident")
    @blp_incidents.arguments(IncidentAssignSchema, location="json")
    @blp_incidents.doc(summary="Assign an incident", security=[{"Bearer": []}])
    def put(self, body, incident_id):
        log_tag = _log_tag("IncidentAssignResource", "put", incident=incident_id)
        incident, error = _load_incident(incident_id)
        if error:
            return error

        IncidentService.assign(incident, body["assignedTo"], g.current_user["_id"])
        Log.info(f"{log_tag} assigned to {body['assignedTo']}")
        broker.publish(
            "incident.assigned",
            {"incidentId": incident["_id"], "title": incident.get("title")},
            user_ids=[body["assignedTo"]],
        )
        return prepared_response(True, "OK", "Incident assigned successfully", data=Incident.get_by_id(incident_id))


@blp_incidents.route("/<string:incident_id>/status")
class IncidentStatusResource(MethodView):

    @token_required
    @crud_write_limiter("incident")
    @blp_incidents.arguments(IncidentStatusSchema, location="json")
    @blp_incidents.doc(summary="Change incident status", security=[{"Bearer": []}])
    def put(self, body, incident_id):
        log_tag = _log_tag("IncidentStatusResource", "put", incident=incident_id, status=body["status"])
        if body["status"] not in INCIDENT_STATUSES:
            return prepared_response(False, "BAD_REQUEST",
                                     f"Status must be one of: {', '.join(INCIDENT_STATUSES)}", error="INVALID_STATUS")

        incident, error = _load_incident(incident_id)
        if error:
            return error

        IncidentService.change_status(incident, body["status"], g.current_user["_id"], body.get("comment"))
        Log.info(f"{log_tag} {incident.get('status')} -> {body['status']}")
        return prepared_response(True, "OK", "Incident status updated successfully",
                                 data=Incident.get_by_id(incident_id))


@blp_incidents.route("/<string:incident_id>/comment")
class IncidentCommentResource(MethodView):

    @token_required
    @crud_write_limiter("incident")
    @blp_incidents.arguments(IncidentCommentSchema, location="json")
    @blp_incidents.doc(summary="Comment on an incident", security=[{"Bearer": []}])
    def post(self, body, incident_id):
        incident, error = _load_incident(incident_id)
        if error:
            return error

        comment = IncidentService.add_comment(incident, body["content"], g.current_user)
        return prepared_response(True, "CREATED", "Comment added successfully", data=comment)
