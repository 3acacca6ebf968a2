# services/feedback_service.py
from ..extensions.db import db
from ..models.feedback_model import Feedback
from ..utils.helpers import regex_contains, utcnow

PRIORITY_ORDER = ("urgent", "high", "medium", "low")


class FeedbackService:

    @staticmethod
    def status_updates(status, user_id, admin_response=None, assigned_to=None):
        """Fields to $set for a status transition."""
        now = utcnow()
        updates = {"status": status, "updatedAt": now}
        if status == "in_progress":
            updates["inProgressAt"] = now
            updates["assignedTo"] = assigned_to or user_id
        elif status == "resolved":
            updates["resolvedAt"] = now
            updates["resolvedBy"] = user_id
        elif status == "closed":
            updates["closedAt"] = now
        elif assigned_to:
            updates["assignedTo"] = assigned_to
        if admin_response:
            updates["adminResponse"] = {"message": admin_response, "respondedBy": user_id, "respondedAt": now}
        return updates

    @staticmethod
    def add_response(feedback, message, user, is_admin_response):
        response = {
            "message": message,
            "userId": user.get("_id"),
            "userName": user.get("name"),
            "isAdminResponse": is_admin_response,
            "createdAt": utcnow(),
        }
        db.get_collection(Feedback.collection_name).update_one(
            {"_id": feedback["_id"]},
            {"$push": {"responses": response}, "$set": {"updatedAt": utcnow()}},
        )
        return response

    @staticmethod
    def open_items(limit=100):
        """
        Open feedback ordered urgent -> low, oldest first within a priority.
        Reads one bounded page per priority until `limit` items are collected.
        """
        collection = db.get_collection(Feedback.collection_name)
        open_query = {"status": {"$in": ["open", "in_progress"]}}
        buckets = [{"priority": p} for p in PRIORITY_ORDER]
        buckets.append({"priority": {"$nin": list(PRIORITY_ORDER)}})

        items = []
        for bucket in buckets:
            remaining = limit - len(items)
            if remaining <= 0:
                break
            items.extend(collection.find({**open_query, **bucket}).sort("createdAt", 1).limit(remaining))
        return items

    @staticmethod
    def search_query(text):
        pattern = regex_contains(text)
        return {"$or": [{"subject": pattern}, {"message": pattern}, {"feedbackReference": pattern}]}

    @staticmethod
    def stats():
        collection = db.get_collection(Feedback.collection_name)

        def breakdown(field):
            return list(collection.aggregate([
                {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
                {"$sort": {"count": -1}},
            ]))

        rating = list(collection.aggregate([
            {"$match": {"rating": {"$ne": None}}},
            {"$group": {"_id": None, "avg": {"$avg": "$rating"}, "count": {"$sum": 1}}},
        ]))
        return {
            "total": collection.count_documents({}),
            "open": collection.count_documents({"status": "open"}),
            "byStatus": breakdown("status"),
            "byType": breakdown("type"),
            "byPriority": breakdown("priority"),
            "averageRating": round(rating[0]["avg"], 2) if rating and rating[0]["avg"] is not None else None,
            "ratedCount": rating[0]["count"] if rating else 0,
        }
