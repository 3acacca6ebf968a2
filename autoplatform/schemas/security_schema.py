# schemas/security_schema.py
from marshmallow import fields

from .common_schema import BaseSchema


class TwoFactorTokenSchema(BaseSchema):
    token = fields.Str(load_default=None)
