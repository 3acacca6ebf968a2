# schemas/realtime_schema.py
from marshmallow import fields, validate

from .common_schema import BaseSchema


class BroadcastSchema(BaseSchema):
    event = fields.Str(required=True, validate=validate.Length(min=1, max=100),
                       error_messages={"required": "event is required"})
    data = fields.Dict(load_default=dict)
    userIds = fields.List(fields.Str(), load_default=None)
    roles = fields.List(fields.Str(), load_default=None)


class RegisterDeviceSchema(BaseSchema):
    token = fields.Str(load_default=None)
    deviceInfo = fields.Dict(load_default=None)


class UnregisterDeviceSchema(BaseSchema):
    token = fields.Str(load_default=None)


class NotificationQuerySchema(BaseSchema):
    status = fields.Str(load_default=None, validate=validate.OneOf(["read", "unread"]))
    type = fields.Str(load_default=None)
    limit = fields.Int(load_default=20, validate=validate.Range(min=1, max=100))
    offset = fields.Int(load_default=0, validate=validate.Range(min=0))


class MarkReadSchema(BaseSchema):
    notificationIds = fields.List(fields.Str(), load_default=None)
