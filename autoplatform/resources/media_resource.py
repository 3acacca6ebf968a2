from flask import g, request
from flask.views import MethodView
from flask_smorest import Blueprint
from pymongo.errors import PyMongoError

from ..models.media_model import MediaFile
from ..schemas.media_schema import BulkOperationSchema, MediaFileSchema, MediaQuerySchema, MediaUpdateSchema
from ..security.auth import is_admin, require_role, token_required
from ..services.media_service import MediaService
from ..utils.helpers import make_log_tag, paginate_cursor, to_object_id
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.rate_limits import crud_delete_limiter, crud_read_limiter, crud_write_limiter
from ..constants.service_code import (
    ERROR_MESSAGES,
    MEDIA_ALLOWED_MIMETYPES,
    MEDIA_BULK_OPERATIONS,
    MEDIA_MAX_FILE_SIZE,
    ROLES,
)

blp_media = Blueprint("Media Management", __name__, description="Media file metadata")


def _log_tag(resource, method, **extra):
    user = g.get("current_user") or {}
    return make_log_tag("media_resource.py", resource, method, request.remote_addr,
                        user.get("_id"), user.get("role"), **extra)


def _load_file(file_id):
    if to_object_id(file_id) is None:
        return None, prepared_response(False, "BAD_REQUEST", ERROR_MESSAGES["INVALID_ID"], error="INVALID_ID")
    media = MediaFile.get_by_id(file_id)
    if not media:
        return None, prepared_response(False, "NOT_FOUND", "File not found", error="FILE_NOT_FOUND")
    return media, None


def _owner_or_admin(media):
    return media.get("uploadedBy") == g.current_user["_id"] or is_admin(g.current_user)


def _access_denied():
    return prepared_response(False, "FORBIDDEN", "Access denied", error="ACCESS_DENIED")


@blp_media.route("/files")
class MediaListResource(MethodView):

    @token_required
    @crud_read_limiter("media")
    @blp_media.arguments(MediaQuerySchema, location="query")
    @blp_media.doc(summary="List media files", security=[{"Bearer": []}])
    def get(self, args):
        log_tag = _log_tag("MediaListResource", "get")
        try:
            files, page_info = paginate_cursor(
                MediaFile.get_collection(), MediaService.list_query(args), args["page"], args["limit"],
                [("createdAt", -1)],
            )
        except PyMongoError as e:
            Log.error(f"{log_tag} error fetching files: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="MEDIA_FETCH_FAILED")
        return prepared_response(True, "OK", data={"files": files, "pagination": page_info})

    @token_required
    @crud_write_limiter("media")
    @blp_media.arguments(MediaFileSchema, location="json")
    @blp_media.doc(summary="Register an uploaded file", security=[{"Bearer": []}])
    def post(self, file_data):
        log_tag = _log_tag("MediaListResource", "post", mimetype=file_data["mimetype"])

        if file_data["mimetype"].lower() not in MEDIA_ALLOWED_MIMETYPES:
            Log.info(f"{log_tag} rejected mimetype")
            return prepared_response(False, "BAD_REQUEST", "File type is not allowed", error="INVALID_FILE_TYPE")
        if file_data["size"] > MEDIA_MAX_FILE_SIZE:
            return prepared_response(False, "BAD_REQUEST",
                                     f"File exceeds the {MEDIA_MAX_FILE_SIZE // (1024 * 1024)}MB limit",
                                     error="FILE_TOO_LARGE")

        try:
            media = MediaFile(
                uploadedBy=g.current_user["_id"],
                created_by=g.current_user["_id"],
                **file_data,
            ).save()
        except PyMongoError as e:
            Log.error(f"{log_tag} error saving file metadata: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="MEDIA_CREATE_FAILED")

        Log.info(f"{log_tag} file {media['_id']} registered size={media['size']}")
        return prepared_response(True, "CREATED", "File registered successfully", data=media)


@blp_media.route("/files/<string:file_id>")
class MediaResource(MethodView):

    @token_required
    @crud_read_limiter("media")
    @blp_media.doc(summary="Get file metadata", security=[{"Bearer": []}])
    def get(self, file_id):
        media, error = _load_file(file_id)
        if error:
            return error
        MediaService.increment(file_id, "views")
        media["views"] = media.get("views", 0) + 1
        return prepared_response(True, "OK", data=media)

    @token_required
    @crud_write_limiter("media")
    @blp_media.arguments(MediaUpdateSchema, location="json")
    @blp_media.doc(summary="Update file metadata", security=[{"Bearer": []}])
    def put(self, changes, file_id):
        log_tag = _log_tag("MediaResource", "put", media=file_id)
        media, error = _load_file(file_id)
        if error:
            return error
        if not _owner_or_admin(media):
            Log.info(f"{log_tag} denied")
            return _access_denied()
        if not changes:
            return prepared_response(False, "BAD_REQUEST", "No changes to apply", error="UPDATE_FAILED")

        MediaFile.update(file_id, **changes)
        return prepared_response(True, "OK", "File updated successfully", data=MediaFile.get_by_id(file_id))

    @token_required
    @crud_delete_limiter("media")
    @blp_media.doc(summary="Delete file metadata", security=[{"Bearer": []}])
    def delete(self, file_id):
        log_tag = _log_tag("MediaResource", "delete", media=file_id)
        media, error = _load_file(file_id)
        if error:
            return error
        if not _owner_or_admin(media):
            Log.info(f"{log_tag} denied")
            return _access_denied()

        MediaFile.delete(file_id)
        Log.info(f"{log_tag} file deleted")
        return prepared_response(True, "OK", "File deleted successfully")


@blp_media.route("/files/<string:file_id>/download")
class MediaDownloadResource(MethodView):

    @token_required
    @crud_read_limiter("media")
    @blp_media.doc(summary="Resolve a download url", security=[{"Bearer": []}])
    def get(self, file_id):
        media, error = _load_file(file_id)
        if error:
            return error
        MediaService.increment(file_id, "downloads")
        return prepared_response(True, "OK", data={
            "url": media.get("url"),
            "filename": media.get("originalName") or media.get("filename"),
            "mimetype": media.get("mimetype"),
            "size": media.get("size"),
        })


@blp_media.route("/analytics")
class MediaAnalyticsResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["MANAGER"])
    @crud_read_limiter("media")
    @blp_media.doc(summary="Storage and usage statistics", security=[{"Bearer": []}])
    def get(self):
        log_tag = _log_tag("MediaAnalyticsResource", "get")
        try:
            data = MediaService.analytics()
        except PyMongoError as e:
            Log.error(f"{log_tag} aggregation failed: {e}")
            return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                                     error="ANALYTICS_FAILED")
        return prepared_response(True, "OK", data=data)


@blp_media.route("/bulk-operations")
class MediaBulkResource(MethodView):

    @token_required
    @require_role(ROLES["ADMIN"], ROLES["MANAGER"])
    @crud_write_limiter("media-bulk", "10 per minute")
    @blp_media.arguments(BulkOperationSchema, location="json")
    @blp_media.doc(summary="Recategorise, tag or delete many files", security=[{"Bearer": []}])
    def post(self, body):
        if body["operation"] not in MEDIA_BULK_OPERATIONS:
            return prepared_response(False, "BAD_REQUEST",
                                     f"Operation must be one of: {', '.join(MEDIA_BULK_OPERATIONS)}",
                                     error="INVALID_OPERATION")

        affected = MediaService.bulk_operation(body["operation"], body["fileIds"], body["data"],
                                               g.current_user["_id"])
        return prepared_response(True, "OK", f"Bulk {body['operation']} completed", data={
            "operation": body["operation"],
            "requested": len(body["fileIds"]),
            "affected": affected,
        })
