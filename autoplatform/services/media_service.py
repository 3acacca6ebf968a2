# services/media_service.py
from ..extensions.db import db
from ..models.media_model import MediaFile
from ..utils.helpers import date_range_filter, regex_contains, to_object_id, utcnow
from ..utils.logger import Log


class MediaService:

    @staticmethod
    def list_query(args):
        query = {}
        for field in ("type", "category", "uploadedBy"):
            if args.get(field):
                query[field] = args[field]
        if args.get("search"):
            pattern = regex_contains(args["search"])
            query["$or"] = [{"filename": pattern}, {"originalName": pattern}, {"description": pattern}]
        query.update(date_range_filter("createdAt", args.get("startDate"), args.get("endDate")))
        return query

    @staticmethod
    def increment(file_id, field):
        """Bump the views or downloads counter."""
        stamp = {"views": "lastViewedAt", "downloads": "lastDownloadedAt"}[field]
        db.get_collection(MediaFile.collection_name).update_one(
            {"_id": to_object_id(file_id)},
            {"$inc": {field: 1}, "$set": {stamp: utcnow()}},
        )

    @staticmethod
    def analytics():
        files = db.get_collection(MediaFile.collection_name)

        totals = list(files.aggregate([
            {"$group": {"_id": None, "count": {"$sum": 1}, "size": {"$sum": "$size"}, "avg": {"$avg": "$size"}}},
        ]))

        def breakdown(field, limit=None):
            pipeline = [
                {"$group": {"_id": f"${field}", "count": {"$sum": 1}, "size": {"$sum": "$size"}}},
                {"$sort": {"count": -1}},
            ]
            if limit:
                pipeline.append({"$limit": limit})
            return list(files.aggregate(pipeline))

        projection = {"filename": 1, "type": 1, "views": 1, "downloads": 1, "uploadedBy": 1}
        return {
            "totalFiles": totals[0]["count"] if totals else 0,
            "totalSize": totals[0]["size"] if totals else 0,
            "avgFileSize": round(totals[0]["avg"] or 0, 2) if totals else 0,
            "byType": breakdown("type"),
            "byCategory": breakdown("category"),
            "topUploaders": breakdown("uploadedBy", limit=10),
            "mostDownloaded": list(files.find({}, projection).sort("downloads", -1).limit(10)),
            "mostViewed": list(files.find({}, projection).sort("views", -1).limit(10)),
        }

    @staticmethod
    def bulk_operation(operation, file_ids, data, user_id):
        """
        Apply update_category, add_tags or delete to many files.
        Returns the number of affected documents.
        """
        log_tag = f"[media_service.py][MediaService][bulk_operation][{operation}][user:{user_id}]"
        files = db.get_collection(MediaFile.collection_name)
        object_ids = [oid for oid in (to_object_id(f) for f in file_ids) if oid is not None]
        selector = {"_id": {"$in": object_ids}}

        if operation == "update_category":
            affected = files.update_many(
                selector, {"$set": {"category": data.get("category"), "updatedAt": utcnow()}}
            ).modified_count
        elif operation == "add_tags":
            affected = files.update_many(
                selector,
                {"$addToSet": {"tags": {"$each": data.get("tags") or []}}, "$set": {"updatedAt": utcnow()}},
            ).modified_count
        elif operation == "delete":
            affected = files.delete_many(selector).deleted_count
        else:
            raise ValueError(f"Unsupported operation {operation}")

        Log.info(f"{log_tag} requested={len(file_ids)} affected={affected}")
        return affected
