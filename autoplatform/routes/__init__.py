from ..resources import (
    blp_ping,
    blp_health,
    blp_auth,
    blp_security,
    blp_auto_parts,
    blp_incidents,
    blp_feedback,
    blp_user_analytics,
    blp_revenue_analytics,
    blp_media,
    blp_mobile,
    blp_realtime,
)

# blueprint -> path below API_PREFIX
PREFIXED_BLUEPRINTS = [
    (blp_auth, "/auth"),
    (blp_security, "/security"),
    (blp_auto_parts, "/auto-parts"),
    (blp_incidents, "/incidents"),
    (blp_feedback, "/feedback"),
    (blp_user_analytics, "/user-analytics"),
    (blp_revenue_analytics, "/revenue-analytics"),
    (blp_media, "/media-management"),
    (blp_mobile, "/mobile"),
    (blp_realtime, "/realtime"),
]


def register_routes(app, api):
    prefix = app.config.get("API_PREFIX", "/api/v1").rstrip("/")

    # liveness probes stay at the root for load balancers
    api.register_blueprint(blp_ping)
    api.register_blueprint(blp_health, url_prefix=prefix)

    for blueprint, path in PREFIXED_BLUEPRINTS:
        api.register_blueprint(blueprint, url_prefix=f"{prefix}{path}")
