# services/incident_service.py
from ..extensions.db import db
from ..models.incident_model import Incident
from ..utils.helpers import date_range_filter, utcnow
from ..utils.logger import Log

TRACKED_FIELDS = ("title", "description", "priority", "severity", "status", "category", "tags", "location")
DONE_STATUSES = ("resolved", "closed")


def _resolution_update(old_status, new_status, now):
    """
    ($set, $unset) for resolvedAt: stamped on resolving, cleared on reopening.
    """
    if new_status == "resolved" and old_status not in DONE_STATUSES:
        return {"resolvedAt": now}, {}
    if new_status not in DONE_STATUSES and old_status in DONE_STATUSES:
        return {}, {"resolvedAt": ""}
    return {}, {}


class IncidentService:

    @staticmethod
    def list_query(args):
        query = {}
        for field in ("status", "priority", "severity", "assignedTo", "createdBy", "category"):
            if args.get(field):
                query[field] = args[field]
        query.update(date_range_filter("createdAt", args.get("startDate"), args.get("endDate")))
        return query

    @staticmethod
    def apply_update(incident, changes, user_id):
        """
        $set changed fields and append one history entry listing them.
        Returns the list of changed keys (empty when nothing differs).
        """
        changed = [key for key in TRACKED_FIELDS if key in changes and changes[key] != incident.get(key)]
        if not changed:
            return []

        now = utcnow()
        updates = {key: changes[key] for key in changed}
        updates["updatedAt"] = now
        operations = {"$push": {"history": Incident.history_entry("updated", user_id, changes=changed)}}
        if "status" in updates:
            stamp, clear = _resolution_update(incident.get("status"), updates["status"], now)
            updates.update(stamp)
            if clear:
                operations["$unset"] = clear
        operations["$set"] = updates

        db.get_collection(Incident.collection_name).update_one({"_id": incident["_id"]}, operations)
        return changed

    @staticmethod
    def change_status(incident, status, user_id, comment=None):
        now = utcnow()
        stamp, clear = _resolution_update(incident.get("status"), status, now)
        updates = {"status": status, "updatedAt": now, **stamp}
        entry = Incident.history_entry(
            "status_changed", user_id, oldStatus=incident.get("status"), newStatus=status, comment=comment
        )
        operations = {"$set": updates, "$push": {"history": entry}}
        if clear:
            operations["$unset"] = clear
        db.get_collection(Incident.collection_name).update_one({"_id": incident["_id"]}, operations)

    @staticmethod
    def assign(incident, assignee, user_id):
        entry = Incident.history_entry(
            "assigned", user_id, previousAssignee=incident.get("assignedTo"), assignedTo=assignee
        )
        db.get_collection(Incident.collection_name).update_one(
            {"_id": incident["_id"]},
            {"$set": {"assignedTo": assignee, "assignedAt": utcnow(), "updatedAt": utcnow()},
             "$push": {"history": entry}},
        )

    @staticmethod
    def add_comment(incident, content, user):
        comment = {
            "content": content,
            "userId": user.get("_id"),
            "userName": user.get("name"),
            "createdAt": utcnow(),
        }
        db.get_collection(Incident.collection_name).update_one(
            {"_id": incident["_id"]},
            {
                "$push": {"comments": comment, "history": Incident.history_entry("commented", user.get("_id"))},
                "$set": {"updatedAt": utcnow()},
            },
        )
        return comment

    @staticmethod
    def metrics(start_date=None, end_date=None):
        log_tag = "[incident_service.py][IncidentService][metrics]"
        incidents = db.get_collection(Incident.collection_name)
        match = date_range_filter("createdAt", start_date, end_date)

        def breakdown(field):
            return list(incidents.aggregate([
                {"$match": match},
                {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
                {"$sort": {"count": -1}},
            ]))

        resolved = incidents.find(
            {**match, "status": {"$in": list(DONE_STATUSES)}, "resolvedAt": {"$ne": None}},
            {"createdAt": 1, "resolvedAt": 1},
        )
        durations = [
            (doc["resolvedAt"] - doc["createdAt"]).total_seconds() * 1000
            for doc in resolved
            if doc.get("resolvedAt") and doc.get("createdAt")
        ]
        avg_ms = sum(durations) / len(durations) if durations else 0

        result = {
            "total": incidents.count_documents(match),
            "open": incidents.count_documents({**match, "status": {"$in": ["open", "in_progress"]}}),
            "resolved": incidents.count_documents({**match, "status": {"$in": list(DONE_STATUSES)}}),
            "byPriority": breakdown("priority"),
            "bySeverity": breakdown("severity"),
            "byStatus": breakdown("status"),
            "avgResolutionTimeMs": round(avg_ms),
            "avgResolutionTimeHours": round(avg_ms / 3_600_000, 2),
        }
        Log.info(f"{log_tag} total={result['total']} resolvedSamples={len(durations)}")
        return result
