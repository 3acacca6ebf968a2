from dotenv import load_dotenv
load_dotenv()  # Load environment variables from .env file

import os


def _bool_env(name, default):
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Base configuration class."""
    APP_NAME = os.getenv("APP_NAME", "Auto Platform")
    APP_ENV = os.getenv("APP_ENV", "development")

    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    DEBUG = _bool_env("FLASK_DEBUG", False)
    TESTING = False

    API_PREFIX = os.getenv("API_PREFIX", "/api/v1")
    PORT = int(os.getenv("PORT", 5000))

    # ========================================
    # DATABASE CONFIGURATION
    # ========================================
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    DB_NAME = os.getenv("DB_NAME", "autoplatform")

    # ========================================
    # REDIS / QUEUE CONFIGURATION
    # ========================================
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    NOTIFICATION_QUEUE = os.getenv("NOTIFICATION_QUEUE", "notifications")

    # ========================================
    # AUTH CONFIGURATION
    # ========================================
    JWT_ACCESS_TTL_MINUTES = int(os.getenv("JWT_ACCESS_TTL_MINUTES", 60))
    JWT_REFRESH_TTL_DAYS = int(os.getenv("JWT_REFRESH_TTL_DAYS", 7))
    TOTP_ISSUER = os.getenv("TOTP_ISSUER", "Auto Platform")

    # ========================================
    # RATE LIMIT / CORS
    # ========================================
    RATELIMIT_ENABLED = _bool_env("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    # ========================================
    # REALTIME (SSE)
    # ========================================
    SSE_QUEUE_SIZE = int(os.getenv("SSE_QUEUE_SIZE", 100))
    SSE_KEEPALIVE_SECONDS = int(os.getenv("SSE_KEEPALIVE_SECONDS", 25))

    # ========================================
    # PUSH GATEWAY
    # ========================================
    PUSH_GATEWAY_URL = os.getenv("PUSH_GATEWAY_URL")
    PUSH_GATEWAY_KEY = os.getenv("PUSH_GATEWAY_KEY")

    SETUP_INDEXES = _bool_env("SETUP_INDEXES", True)


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    APP_ENV = "testing"
    SECRET_KEY = "testing-secret-key-with-enough-length-for-hs256"
    DB_NAME = "autoplatform_test"
    RATELIMIT_ENABLED = False
    SSE_KEEPALIVE_SECONDS = 1
    SETUP_INDEXES = False


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    APP_ENV = "production"


CONFIG_BY_NAME = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def load_config(app, config_name=None):
    load_dotenv()
    config_name = config_name or os.getenv("APP_ENV", "development")
    config_class = CONFIG_BY_NAME.get(config_name, DevelopmentConfig)
    app.config.from_object(config_class)
    return config_class
