# schemas/analytics_schema.py
from marshmallow import fields, validate

from .common_schema import BaseSchema, DateRangeQuerySchema
from ..constants.service_code import (
    EXPORT_FORMATS,
    REVENUE_BENCHMARKS,
    REVENUE_METRICS,
    REVENUE_PERIODS,
)


# ===================== Revenue =====================

class RevenueQuerySchema(DateRangeQuerySchema):
    """Filters shared by every revenue report."""
    shopId = fields.Str(load_default=None)
    category = fields.Str(load_default=None)


class RevenueOverviewQuerySchema(RevenueQuerySchema):
    period = fields.Str(load_default="monthly", validate=validate.OneOf(REVENUE_PERIODS))


class RevenueTrendsQuerySchema(RevenueQuerySchema):
    period = fields.Str(load_default="daily", validate=validate.OneOf(["daily", "weekly", "monthly"]))
    metric = fields.Str(load_default="revenue", validate=validate.OneOf(REVENUE_METRICS))


class RevenueForecastQuerySchema(BaseSchema):
    months = fields.Int(load_default=6, validate=validate.Range(min=1, max=24))
    confidence = fields.Float(load_default=0.8, validate=validate.Range(min=0, max=1))
    shopId = fields.Str(load_default=None)


class RevenueSegmentsQuerySchema(RevenueQuerySchema):
    # checked in the resource so an unknown value maps to INVALID_SEGMENT
    segmentBy = fields.Str(load_default="category")


class RevenuePerformanceQuerySchema(RevenueQuerySchema):
    benchmark = fields.Str(load_default="previous_period", validate=validate.OneOf(REVENUE_BENCHMARKS))


class RevenueExportQuerySchema(RevenueQuerySchema):
    format = fields.Str(load_default="json", validate=validate.OneOf(EXPORT_FORMATS))
    includeDetails = fields.Bool(load_default=False)


# ===================== Users =====================

class TrackActivitySchema(BaseSchema):
    type = fields.Str(required=True, validate=validate.Length(min=1, max=100),
                      error_messages={"required": "Activity type is required"})
    sessionId = fields.Str(load_default=None)
    page = fields.Str(load_default=None)
    feature = fields.Str(load_default=None)
    duration = fields.Float(load_default=None, validate=validate.Range(min=0))
    amount = fields.Float(load_default=None)
    metadata = fields.Dict(load_default=dict)


class UserExportQuerySchema(DateRangeQuerySchema):
    format = fields.Str(load_default="json", validate=validate.OneOf(EXPORT_FORMATS))
    limit = fields.Int(load_default=10000, validate=validate.Range(min=1, max=10000))
