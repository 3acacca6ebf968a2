# schemas/auto_parts_schema.py
from marshmallow import fields, validate

from .common_schema import BaseSchema, DateRangeQuerySchema, PaginationQuerySchema

PART_STATUSES = ["active", "inactive", "discontinued"]


class InventoryQuerySchema(PaginationQuerySchema):
    """Query schema for the inventory listing."""
    limit = fields.Int(load_default=50, validate=validate.Range(min=1, max=100))
    category = fields.Str(load_default=None)
    brand = fields.Str(load_default=None)
    partNumber = fields.Str(load_default=None)
    search = fields.Str(load_default=None)
    inStock = fields.Bool(load_default=True)
    minPrice = fields.Float(load_default=None, validate=validate.Range(min=0))
    maxPrice = fields.Float(load_default=None, validate=validate.Range(min=0))


class AutoPartSchema(BaseSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=200),
                      error_messages={"required": "Part name is required"})
    partNumber = fields.Str(required=True, validate=validate.Length(min=1, max=100),
                            error_messages={"required": "Part number is required"})
    brand = fields.Str(required=True, error_messages={"required": "Brand is required"})
    category = fields.Str(required=True, error_messages={"required": "Category is required"})
    price = fields.Float(required=True, validate=validate.Range(min=0),
                         error_messages={"required": "Price is required"})
    quantity = fields.Int(required=True, validate=validate.Range(min=0),
                          error_messages={"required": "Quantity is required"})
    description = fields.Str(load_default="")
    cost = fields.Float(load_default=None, validate=validate.Range(min=0))
    minQuantity = fields.Int(load_default=0, validate=validate.Range(min=0))
    maxQuantity = fields.Int(load_default=1000, validate=validate.Range(min=0))
    location = fields.Str(load_default=None)
    supplier = fields.Str(load_default=None)
    compatibility = fields.List(fields.Str(), load_default=list)
    specifications = fields.Dict(load_default=dict)
    images = fields.List(fields.Str(), load_default=list)


class AutoPartUpdateSchema(BaseSchema):
    name = fields.Str(validate=validate.Length(min=1, max=200))
    brand = fields.Str()
    category = fields.Str()
    description = fields.Str()
    price = fields.Float(validate=validate.Range(min=0))
    cost = fields.Float(validate=validate.Range(min=0), allow_none=True)
    quantity = fields.Int(validate=validate.Range(min=0))
    minQuantity = fields.Int(validate=validate.Range(min=0))
    maxQuantity = fields.Int(validate=validate.Range(min=0))
    location = fields.Str(allow_none=True)
    supplier = fields.Str(allow_none=True)
    compatibility = fields.List(fields.Str())
    specifications = fields.Dict()
    images = fields.List(fields.Str())
    status = fields.Str(validate=validate.OneOf(PART_STATUSES))


class OrderItemSchema(BaseSchema):
    partId = fields.Str(required=True, error_messages={"required": "partId is required"})
    quantity = fields.Int(required=True, validate=validate.Range(min=1),
                          error_messages={"required": "quantity is required"})


class CustomerInfoSchema(BaseSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1),
                      error_messages={"required": "Customer name is required"})
    email = fields.Email(required=True, error_messages={"required": "Customer email is required"})
    phone = fields.Str(load_default=None)


class OrderSchema(BaseSchema):
    items = fields.List(
        fields.Nested(OrderItemSchema),
        required=True,
        validate=validate.Length(min=1, error="Order must contain at least one item"),
        error_messages={"required": "Order must contain at least one item"},
    )
    customerInfo = fields.Nested(CustomerInfoSchema, required=True,
                                 error_messages={"required": "Customer information is required"})
    shippingAddress = fields.Dict(load_default=None)
    paymentMethod = fields.Str(load_default=None)
    shopId = fields.Str(load_default=None)
    notes = fields.Str(load_default=None)


class OrderQuerySchema(PaginationQuerySchema, DateRangeQuerySchema):
    status = fields.Str(load_default=None)
    customerEmail = fields.Str(load_default=None)
    shopId = fields.Str(load_default=None)


class OrderStatusSchema(BaseSchema):
    status = fields.Str(required=True, error_messages={"required": "Status is required"})
    trackingNumber = fields.Str(load_default=None)
    notes = fields.Str(load_default=None)
