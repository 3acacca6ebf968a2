# schemas/incident_schema.py
from marshmallow import fields, validate

from .common_schema import BaseSchema, DateRangeQuerySchema, PaginationQuerySchema
from ..constants.service_code import INCIDENT_LEVELS


class IncidentQuerySchema(PaginationQuerySchema, DateRangeQuerySchema):
    limit = fields.Int(load_default=10, validate=validate.Range(min=1, max=100))
    status = fields.Str(load_default=None)
    priority = fields.Str(load_default=None)
    severity = fields.Str(load_default=None)
    assignedTo = fields.Str(load_default=None)
    createdBy = fields.Str(load_default=None)
    category = fields.Str(load_default=None)


class IncidentSchema(BaseSchema):
    title = fields.Str(required=True, validate=validate.Length(min=1, max=200),
                       error_messages={"required": "Title is required"})
    description = fields.Str(required=True, validate=validate.Length(min=1),
                             error_messages={"required": "Description is required"})
    priority = fields.Str(load_default="medium", validate=validate.OneOf(INCIDENT_LEVELS))
    severity = fields.Str(load_default="medium", validate=validate.OneOf(INCIDENT_LEVELS))
    category = fields.Str(load_default="general")
    location = fields.Raw(load_default=None)
    vehicleId = fields.Str(load_default=None)
    tags = fields.List(fields.Str(), load_default=list)


class IncidentUpdateSchema(BaseSchema):
    title = fields.Str(validate=validate.Length(min=1, max=200))
    description = fields.Str(validate=validate.Length(min=1))
    priority = fields.Str(validate=validate.OneOf(INCIDENT_LEVELS))
    severity = fields.Str(validate=validate.OneOf(INCIDENT_LEVELS))
    status = fields.Str()
    category = fields.Str()
    location = fields.Raw(allow_none=True)
    tags = fields.List(fields.Str())


class IncidentAssignSchema(BaseSchema):
    assignedTo = fields.Str(required=True, validate=validate.Length(min=1),
                            error_messages={"required": "assignedTo is required"})


class IncidentStatusSchema(BaseSchema):
    status = fields.Str(required=True, error_messages={"required": "Status is required"})
    comment = fields.Str(load_default=None)


class IncidentCommentSchema(BaseSchema):
    content = fields.Str(required=True, validate=validate.Length(min=1),
                         error_messages={"required": "Comment content is required"})


class IncidentMetricsQuerySchema(DateRangeQuerySchema):
    pass
