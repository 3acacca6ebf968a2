import time

from flask import current_app
from flask.views import MethodView
from flask_smorest import Blueprint
from pymongo.errors import PyMongoError

from ..extensions.db import db
from ..utils.json_response import prepared_response
from ..utils.logger import Log

blp_ping = Blueprint("Ping", __name__, description="Liveness probes")
blp_health = Blueprint("Health", __name__, description="Service health")


def _uptime():
    return round(time.time() - current_app.config.get("STARTED_AT", time.time()), 2)


@blp_ping.route("/ping")
class PingResource(MethodView):
    @blp_ping.doc(summary="Liveness probe")
    def get(self):
        return prepared_response(True, "OK", data={
            "status": "pong",
            "uptime": _uptime(),
            "environment": current_app.config.get("APP_ENV"),
        })


@blp_ping.route("/health/ping")
class HealthPingResource(PingResource):
    pass


@blp_health.route("/health")
class HealthResource(MethodView):
    @blp_health.doc(summary="Readiness probe including database connectivity")
    def get(self):
        try:
            db.ping()
        except (PyMongoError, RuntimeError) as e:
            Log.error(f"[health_resource.py][HealthResource][get] database ping failed: {e}")
            return prepared_response(False, "SERVICE_UNAVAILABLE", "Database unavailable",
                                     error="SERVICE_UNAVAILABLE", data={"database": "disconnected"})
        return prepared_response(True, "OK", data={
            "status": "healthy",
            "database": "connected",
            "uptime": _uptime(),
            "environment": current_app.config.get("APP_ENV"),
        })
