import time

from flask import Flask
from flask_smorest import Api
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import load_config
from .extensions import cors, db, redis_connection
from .routes import register_routes
from .services.event_broker import broker
from .utils.database_setup import setup_database_indexes
from .utils.error_handlers import register_error_handlers
from .utils.extensions import limiter
from .utils.logger import Log


def create_app(config_name=None, mongo_client=None, redis_client=None):
    """
    Application factory. `mongo_client` and `redis_client` replace the
    connections built from MONGO_URI / REDIS_URL (tests pass in-memory ones).
    """
    app = Flask(__name__)

    #get actual client IP
    app.wsgi_app = ProxyFix(
        app.wsgi_app,
        x_for=1,      # Trust X-Forwarded-For
        x_proto=1,    # Trust X-Forwarded-Proto
        x_host=1,     # Trust X-Forwarded-Host
        x_port=1,     # Trust X-Forwarded-Port
        x_prefix=1    # Trust X-Forwarded-Prefix
    )

    # Load configuration (ensure it does NOT override Flask-Smorest keys)
    config_class = load_config(app, config_name)

    app.config["API_TITLE"] = app.config.get("APP_NAME", "Auto Platform") + " API"
    app.config["API_VERSION"] = "v1"
    app.config["OPENAPI_VERSION"] = "3.0.3"
    app.config["OPENAPI_URL_PREFIX"] = app.config["API_PREFIX"]
    app.config["OPENAPI_JSON_PATH"] = "openapi.json"
    app.config["OPENAPI_SWAGGER_UI_PATH"] = "/docs"
    app.config["OPENAPI_SWAGGER_UI_URL"] = "https://cdn.jsdelivr.net/npm/swagger-ui-dist/"
    app.config["API_SPEC_OPTIONS"] = {
        "components": {
            "securitySchemes": {
                "Bearer": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
            }
        }
    }
    app.config["STARTED_AT"] = time.time()

    api = Api(app)

    # Initialize all extensions
    db.init_app(app, client=mongo_client)
    redis_connection.init_app(app, connection=redis_client)
    cors.init_app(app, resources={r"/*": {"origins": app.config["CORS_ORIGINS"]}})
    limiter.init_app(app)
    broker.max_queue_size = app.config["SSE_QUEUE_SIZE"]

    if app.config.get("SETUP_INDEXES"):
        with app.app_context():
            setup_database_indexes()

    register_error_handlers(app)
    register_routes(app, api)

    Log.info(f"[__init__.py][create_app] {config_class.__name__} loaded, prefix={app.config['API_PREFIX']}")
    return app
