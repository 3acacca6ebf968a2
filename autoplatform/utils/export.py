import json

import pandas as pd
from flask import Response

from .serialization import to_jsonable


def rows_to_csv(rows):
    """Flatten a list of documents into CSV text (nested keys become a.b columns)."""
    rows = to_jsonable(list(rows))
    if not rows:
        return ""
    frame = pd.json_normalize(rows)
    # Lists do not survive CSV cells well
    for column in frame.columns:
        frame[column] = frame[column].map(lambda v: json.dumps(v) if isinstance(v, list) else v)
    return frame.to_csv(index=False)


def download_response(rows, export_format, filename_stem, payload=None):
    """
    Attachment response for `rows` as CSV, or for `payload` (default rows)
    as JSON.
    """
    if export_format == "csv":
        return Response(
            rows_to_csv(rows),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename_stem}.csv"},
        )

    body = to_jsonable(payload if payload is not None else rows)
    return Response(
        json.dumps(body, indent=2),
        mimetype="application/json",
        headers={"Content-Disposition": f"attachment; filename={filename_stem}.json"},
    )
