# schemas/media_schema.py
from marshmallow import fields, validate

from .common_schema import BaseSchema, DateRangeQuerySchema, PaginationQuerySchema


class MediaQuerySchema(PaginationQuerySchema, DateRangeQuerySchema):
    type = fields.Str(load_default=None)
    category = fields.Str(load_default=None)
    uploadedBy = fields.Str(load_default=None)
    search = fields.Str(load_default=None)


class MediaFileSchema(BaseSchema):
    """Metadata for a file already stored in object storage."""
    filename = fields.Str(required=True, validate=validate.Length(min=1, max=255),
                          error_messages={"required": "filename is required"})
    originalName = fields.Str(load_default=None)
    mimetype = fields.Str(required=True, error_messages={"required": "mimetype is required"})
    size = fields.Int(required=True, validate=validate.Range(min=0),
                      error_messages={"required": "size is required"})
    url = fields.Url(required=True, error_messages={"required": "url is required"})
    category = fields.Str(load_default="general")
    description = fields.Str(load_default="")
    tags = fields.List(fields.Str(), load_default=list)


class MediaUpdateSchema(BaseSchema):
    originalName = fields.Str()
    category = fields.Str()
    description = fields.Str()
    tags = fields.List(fields.Str())


class BulkOperationSchema(BaseSchema):
    operation = fields.Str(required=True, error_messages={"required": "operation is required"})
    fileIds = fields.List(fields.Str(), required=True, validate=validate.Length(min=1),
                          error_messages={"required": "fileIds is required"})
    data = fields.Dict(load_default=dict)
