# schemas/mobile_schema.py
from marshmallow import fields, validate

from .common_schema import BaseSchema, ISODateTime, PaginationQuerySchema
from ..constants.service_code import (
    FEATURE_FLAG_STATUSES,
    PUSH_NOTIFICATION_TYPES,
    RELEASE_PLATFORMS,
    RELEASE_STATUSES,
)

FLAG_PLATFORMS = ["all", "ios", "android", "web"]


class ReleaseQuerySchema(BaseSchema):
    platform = fields.Str(load_default=None)
    status = fields.Str(load_default=None)
    limit = fields.Int(load_default=20, validate=validate.Range(min=1, max=100))


class ReleaseSchema(BaseSchema):
    version = fields.Str(required=True, validate=validate.Regexp(r"^\d+\.\d+(\.\d+)?$", error="Invalid version"),
                         error_messages={"required": "version is required"})
    platform = fields.Str(required=True, validate=validate.OneOf(RELEASE_PLATFORMS),
                          error_messages={"required": "platform is required"})
    buildNumber = fields.Str(required=True, error_messages={"required": "buildNumber is required"})
    releaseNotes = fields.Str(load_default="")
    minOsVersion = fields.Str(load_default=None)
    downloadUrl = fields.Url(load_default=None)
    forceUpdate = fields.Bool(load_default=False)


class ReleaseStatusSchema(BaseSchema):
    status = fields.Str(required=True, validate=validate.OneOf(RELEASE_STATUSES))


class PushNotificationQuerySchema(PaginationQuerySchema):
    type = fields.Str(load_default=None)
    status = fields.Str(load_default=None)


class PushNotificationSchema(BaseSchema):
    title = fields.Str(required=True, validate=validate.Length(min=1, max=100),
                       error_messages={"required": "title is required"})
    body = fields.Str(required=True, validate=validate.Length(min=1, max=1000),
                      error_messages={"required": "body is required"})
    type = fields.Str(required=True, validate=validate.OneOf(PUSH_NOTIFICATION_TYPES),
                      error_messages={"required": "type is required"})
    targetUsers = fields.List(fields.Str(), required=True, validate=validate.Length(min=1),
                              error_messages={"required": "targetUsers is required"})
    data = fields.Dict(load_default=dict)
    scheduledFor = ISODateTime(load_default=None)


class FeatureFlagQuerySchema(BaseSchema):
    status = fields.Str(load_default=None)
    platform = fields.Str(load_default=None)


class FeatureFlagSchema(BaseSchema):
    name = fields.Str(required=True, validate=validate.Regexp(r"^[a-z0-9_.-]{2,64}$", error="Invalid flag name"),
                      error_messages={"required": "name is required"})
    description = fields.Str(load_default="")
    status = fields.Str(load_default="disabled", validate=validate.OneOf(FEATURE_FLAG_STATUSES))
    rolloutPercentage = fields.Int(load_default=100, validate=validate.Range(min=0, max=100))
    platform = fields.Str(load_default="all", validate=validate.OneOf(FLAG_PLATFORMS))


class FeatureFlagUpdateSchema(BaseSchema):
    status = fields.Str(required=True, validate=validate.OneOf(FEATURE_FLAG_STATUSES),
                        error_messages={"required": "status is required"})
    rolloutPercentage = fields.Int(validate=validate.Range(min=0, max=100))
    description = fields.Str()
    platform = fields.Str(validate=validate.OneOf(FLAG_PLATFORMS))


class FeatureFlagEvaluateQuerySchema(BaseSchema):
    name = fields.Str(required=True, error_messages={"required": "name is required"})
