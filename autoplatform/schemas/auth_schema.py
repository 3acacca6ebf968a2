# schemas/auth_schema.py
from marshmallow import fields, validate

from .common_schema import BaseSchema
from ..constants.service_code import ROLES


class RegisterSchema(BaseSchema):
    name = fields.Str(
        required=True,
        validate=validate.Length(min=2, max=100),
        error_messages={"required": "Name is required", "invalid": "Name must be a string"},
    )
    email = fields.Email(
        required=True,
        error_messages={"required": "Email is required", "invalid": "Invalid email address"},
    )
    password = fields.Str(
        required=True,
        load_only=True,
        validate=validate.Length(min=8, max=128),
        error_messages={"required": "Password is required"},
    )
    role = fields.Str(load_default=ROLES["USER"], validate=validate.OneOf(list(ROLES.values())))
    location = fields.Dict(load_default=None)


class LoginSchema(BaseSchema):
    email = fields.Email(required=True, error_messages={"required": "Email is required"})
    password = fields.Str(required=True, load_only=True, error_messages={"required": "Password is required"})
    totp_code = fields.Str(load_default=None)
    deviceId = fields.Str(load_default=None)
    deviceName = fields.Str(load_default=None)
    platform = fields.Str(load_default=None)


class RefreshTokenSchema(BaseSchema):
    refresh_token = fields.Str(required=True, error_messages={"required": "refresh_token is required"})
