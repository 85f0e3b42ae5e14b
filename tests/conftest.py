"""Shared test fixtures."""

import os
import tempfile

import pytest


# Settings are read when src.main is imported
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="blogapi-logs-"))
os.environ.setdefault("REDIS_ENABLED", "false")

from fastapi.testclient import TestClient  # noqa: E402

from tests.fakes import FakeSession  # noqa: E402


SERVICE_NAMES = (
    "auth_service",
    "post_service",
    "comment_service",
    "reaction_service",
    "user_admin_service",
    "cassandra_session",
)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def app():
    from src.main import app as application

    yield application
    for name in SERVICE_NAMES:
        if hasattr(application.state, name):
            delattr(application.state, name)


@pytest.fixture
def client(app) -> TestClient:
    """Client without lifespan; tests put service doubles on ``app.state``."""
    return TestClient(app)
