from flask import request
from flask_limiter.errors import RateLimitExceeded
from marshmallow import ValidationError
from pymongo.errors import PyMongoError
from werkzeug.exceptions import HTTPException

from .json_response import prepared_response
from .logger import Log
from ..constants.service_code import ERROR_MESSAGES


# Handle PermissionError
def handle_permission_error(error):
    return prepared_response(False, "FORBIDDEN", str(error) or ERROR_MESSAGES["UNAUTHORIZED_ACCESS"],
                             error="FORBIDDEN")


# Handle marshmallow ValidationError raised outside of request parsing
def handle_validation_error(error):
    return prepared_response(False, "BAD_REQUEST", ERROR_MESSAGES["VALIDATION_FAILED"],
                             error="VALIDATION_ERROR", errors=error.messages)


# flask-smorest aborts with 422 when @blp.arguments fails
def handle_unprocessable_entity(error):
    messages = None
    data = getattr(error, "data", None) or {}
    if isinstance(data, dict):
        messages = data.get("messages")
    if messages is None:
        exc = getattr(error, "exc", None)
        messages = getattr(exc, "messages", None)
    return prepared_response(False, "BAD_REQUEST", ERROR_MESSAGES["VALIDATION_FAILED"],
                             error="VALIDATION_ERROR", errors=messages)


def handle_not_found(error):
    return prepared_response(False, "NOT_FOUND", "Route not found", error="NOT_FOUND")


def handle_method_not_allowed(error):
    return prepared_response(False, "METHOD_NOT_ALLOWED", "Method not allowed", error="METHOD_NOT_ALLOWED")


def handle_rate_limit(e):
    # e.description contains whatever was passed as error_message=
    return prepared_response(False, "TOO_MANY_REQUESTS",
                             e.description or "Too many requests, please try again later.",
                             error="RATE_LIMIT_EXCEEDED")


def handle_database_error(error):
    Log.error(f"[error_handlers.py][handle_database_error][{request.method} {request.path}] {error}")
    return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                             error="DATABASE_ERROR")


def handle_unexpected_error(error):
    if isinstance(error, HTTPException):
        return error
    Log.error(f"[error_handlers.py][handle_unexpected_error][{request.method} {request.path}] {error!r}")
    return prepared_response(False, "INTERNAL_SERVER_ERROR", ERROR_MESSAGES["SERVER_ERROR"],
                             error="INTERNAL_SERVER_ERROR")


def register_error_handlers(app):
    app.errorhandler(PermissionError)(handle_permission_error)
    app.errorhandler(ValidationError)(handle_validation_error)
    app.errorhandler(422)(handle_unprocessable_entity)
    app.errorhandler(404)(handle_not_found)
    app.errorhandler(405)(handle_method_not_allowed)
    app.errorhandler(RateLimitExceeded)(handle_rate_limit)
    app.errorhandler(PyMongoError)(handle_database_error)
    app.errorhandler(Exception)(handle_unexpected_error)
