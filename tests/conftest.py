"""Shared fixtures: Flask app on in-memory Mongo and Redis, users and tokens.

Invariants:
    - Every test gets a fresh mongomock client and fakeredis connection
    - Rate limiting is disabled through TestingConfig
    - The realtime broker is emptied between tests
"""

import os
import tempfile

os.environ.setdefault("APP_LOG_DIR", os.path.join(tempfile.gettempdir(), "autoplatform-test-logs"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

import fakeredis
import mongomock
import pytest

from autoplatform import create_app
from autoplatform.models.user_model import User
from autoplatform.security.auth import create_token
from autoplatform.services.event_broker import broker


@pytest.fixture
def app():
    app = create_app(
        "testing",
        mongo_client=mongomock.MongoClient(),
        redis_client=fakeredis.FakeRedis(),
    )
    yield app
    for subscriber_id in list(broker._subscribers):
        broker.unsubscribe(subscriber_id)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Insert a user and return the stored document."""
    counter = {"n": 0}

    def _make(role="user", password="password123", **fields):
        counter["n"] += 1
        with app.app_context():
            return User(
                name=fields.pop("name", f"User {counter['n']}"),
                email=fields.pop("email", f"user{counter['n']}@example.com"),
                password=password,
                role=role,
                **fields,
            ).save()

    return _make


@pytest.fixture
def auth_headers(app):
    """Bearer header for a stored user document."""

    def _headers(user):
        with app.app_context():
            token, _ = create_token(user, "access")
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin_headers(make_user, auth_headers):
    return auth_headers(make_user(role="admin"))


@pytest.fixture
def user_headers(make_user, auth_headers):
    return auth_headers(make_user(role="user"))
