HTTP_STATUS_CODES = {
    "OK": 200,
    "CREATED": 201,
    "NO_CONTENT": 204,
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "METHOD_NOT_ALLOWED": 405,
    "CONFLICT": 409,
    "TOO_MANY_REQUESTS": 429,
    "INTERNAL_SERVER_ERROR": 500,
    "SERVICE_UNAVAILABLE": 503,
}

ERROR_MESSAGES = {
    "VALIDATION_FAILED": "Validation failed. Please check your inputs.",
    "UNAUTHORIZED_ACCESS": "You are not authorized to access this resource.",
    "RESOURCE_NOT_FOUND": "The requested resource could not be found.",
    "DUPLICATE_RESOURCE": "The resource already exists.",
    "SERVER_ERROR": "An unexpected error occurred. Please try again later.",
    "INVALID_ID": "The supplied identifier is not valid.",
}

AUTHENTICATION_MESSAGES = {
    "AUTHENTICATION_REQUIRED": "Authentication Required",
    "TOKEN_EXPIRED": "Token expired",
    "INVALID_TOKEN": "Invalid token",
    "TOKEN_REVOKED": "Token has been revoked",
    "INSUFFICIENT_PERMISSIONS": "Insufficient permissions",
    "INVALID_CREDENTIALS": "Invalid email or password",
    "ACCOUNT_INACTIVE": "Account is not active",
    "TWO_FACTOR_REQUIRED": "Two-factor authentication code required",
    "INVALID_2FA_TOKEN": "Invalid two-factor authentication code",
}

ROLES = {
    "ADMIN": "admin",
    "HEAD_ADMINISTRATOR": "head_administrator",
    "MANAGER": "manager",
    "ANALYST": "analyst",
    "INVENTORY_MANAGER": "inventory_manager",
    "ORDER_MANAGER": "order_manager",
    "MARKETING": "marketing",
    "DEVELOPER": "developer",
    "USER": "user",
}

# Roles that pass every role check
SUPER_ROLES = (ROLES["ADMIN"], ROLES["HEAD_ADMINISTRATOR"])

USER_STATUSES = ["active", "inactive", "suspended"]

ORDER_STATUSES = ["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]

INCIDENT_STATUSES = ["open", "in_progress", "resolved", "closed", "cancelled"]
INCIDENT_LEVELS = ["low", "medium", "high", "critical"]

FEEDBACK_TYPES = ["bug", "feature", "improvement", "complaint", "praise", "question", "general"]
FEEDBACK_STATUSES = ["open", "in_progress", "resolved", "closed"]
FEEDBACK_PRIORITIES = ["low", "medium", "high", "urgent"]

MEDIA_ALLOWED_MIMETYPES = [
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "video/mp4",
    "video/quicktime",
    "audio/mpeg",
    "audio/wav",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
]
MEDIA_MAX_FILE_SIZE = 10 * 1024 * 1024
MEDIA_BULK_OPERATIONS = ["update_category", "add_tags", "delete"]

RELEASE_PLATFORMS = ["ios", "android"]
RELEASE_STATUSES = ["draft", "testing", "published", "archived"]
FEATURE_FLAG_STATUSES = ["enabled", "disabled", "testing"]
PUSH_NOTIFICATION_TYPES = ["promotional", "transactional", "alert", "reminder", "system"]

REVENUE_PERIODS = ["daily", "weekly", "monthly", "yearly"]
REVENUE_METRICS = ["revenue", "orders", "avgOrderValue"]
REVENUE_SEGMENTS = ["category", "shop", "customer", "product"]
REVENUE_BENCHMARKS = ["previous_period", "same_period_last_year"]
EXPORT_FORMATS = ["json", "csv"]
