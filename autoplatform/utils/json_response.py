from datetime import datetime, timezone

from flask import jsonify

from ..constants.service_code import HTTP_STATUS_CODES
from .serialization import to_jsonable


def prepared_response(success, status_code, message=None, data=None, error=None, errors=None, **extra):
    """
    Build the standard JSON envelope.

    `status_code` is a key of HTTP_STATUS_CODES. `error` is the machine
    readable code returned on failures; `errors` carries field level detail.
    """
    # Fields that always appear
    mandatory_fields = ["success", "timestamp"]

    all_fields = {
        "success": success,
        "data": to_jsonable(data),
        "message": message,
        "error": error,
        "errors": to_jsonable(errors),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    all_fields.update(to_jsonable(extra))

    response_data = {
        key: value for key, value in all_fields.items()
        if key in mandatory_fields or value is not None
    }

    return jsonify(response_data), HTTP_STATUS_CODES[status_code]
