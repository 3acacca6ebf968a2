from .health_resource import blp_ping, blp_health
from .auth_resource import blp_auth
from .security_resource import blp_security
from .auto_parts_resource import blp_auto_parts
from .incidents_resource import blp_incidents
from .feedback_resource import blp_feedback
from .user_analytics_resource import blp_user_analytics
from .revenue_analytics_resource import blp_revenue_analytics
from .media_resource import blp_media
from .mobile_resource import blp_mobile
from .realtime_resource import blp_realtime


__all__ = [
    #-------------------
    #SYSTEM
    #-------------------
    "blp_ping",
    "blp_health",
    #-------------------
    #AUTH & SECURITY
    #-------------------
    "blp_auth",
    "blp_security",
    #-------------------
    #BUSINESS
    #-------------------
    "blp_auto_parts",
    "blp_incidents",
    "blp_feedback",
    "blp_media",
    "blp_mobile",
    "blp_realtime",
    #-------------------
    #ANALYTICS
    #-------------------
    "blp_user_analytics",
    "blp_revenue_analytics",
]
