# schemas/feedback_schema.py
from marshmallow import fields, validate

from .common_schema import BaseSchema, PaginationQuerySchema
from ..constants.service_code import FEEDBACK_PRIORITIES, FEEDBACK_STATUSES


class FeedbackQuerySchema(PaginationQuerySchema):
    type = fields.Str(load_default=None)
    status = fields.Str(load_default=None)
    userId = fields.Str(load_default=None)
    category = fields.Str(load_default=None)


class FeedbackSchema(BaseSchema):
    # presence of type/subject/message is checked in the resource
    type = fields.Str(load_default=None)
    subject = fields.Str(load_default=None, validate=validate.Length(max=200))
    message = fields.Str(load_default=None)
    category = fields.Str(load_default=None)
    priority = fields.Str(load_default="medium", validate=validate.OneOf(FEEDBACK_PRIORITIES))
    rating = fields.Int(load_default=None, allow_none=True, validate=validate.Range(min=1, max=5))
    attachments = fields.List(fields.Str(), load_default=list)
    metadata = fields.Dict(load_default=dict)


class FeedbackUpdateSchema(BaseSchema):
    subject = fields.Str(validate=validate.Length(min=1, max=200))
    message = fields.Str(validate=validate.Length(min=1))
    category = fields.Str()
    priority = fields.Str(validate=validate.OneOf(FEEDBACK_PRIORITIES))
    attachments = fields.List(fields.Str())


class FeedbackStatusSchema(BaseSchema):
    status = fields.Str(required=True, validate=validate.OneOf(FEEDBACK_STATUSES),
                        error_messages={"required": "Status is required"})
    adminResponse = fields.Str(load_default=None)
    assignedTo = fields.Str(load_default=None)


class FeedbackResponseSchema(BaseSchema):
    response = fields.Str(required=True, validate=validate.Length(min=1),
                          error_messages={"required": "Response is required"})
    isAdminResponse = fields.Bool(load_default=False)


class FeedbackSearchQuerySchema(PaginationQuerySchema):
    q = fields.Str(load_default=None)
