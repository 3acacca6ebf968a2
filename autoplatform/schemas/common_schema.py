# schemas/common_schema.py
from marshmallow import Schema, fields, validate, validates_schema, ValidationError, EXCLUDE

from ..utils.helpers import parse_datetime


class ISODateTime(fields.Field):
    """Accepts `2024-05-01`, `2024-05-01T10:00:00` and `...Z` values."""

    default_error_messages = {"invalid": "Not a valid ISO-8601 date."}

    def _deserialize(self, value, attr, data, **kwargs):
        try:
            return parse_datetime(value)
        except (TypeError, ValueError):
            raise self.make_error("invalid")

    def _serialize(self, value, attr, obj, **kwargs):
        return value.isoformat() if value else None


class BaseSchema(Schema):
    class Meta:
        unknown = EXCLUDE


class PaginationQuerySchema(BaseSchema):
    page = fields.Int(load_default=1, validate=validate.Range(min=1))
    limit = fields.Int(load_default=20, validate=validate.Range(min=1, max=100))


class DateRangeQuerySchema(BaseSchema):
    startDate = ISODateTime(load_default=None)
    endDate = ISODateTime(load_default=None)

    @validates_schema
    def validate_range(self, data, **kwargs):
        start, end = data.get("startDate"), data.get("endDate")
        if start and end and start > end:
            raise ValidationError("startDate must be before endDate.", "startDate")
