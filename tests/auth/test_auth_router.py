"""Tests for the auth endpoints."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from src.auth.models import User
from src.auth.service import AuthService, UserBannedError
from src.core.exceptions import ConflictError
from tests.fakes import bearer


USER_ID = "1" * 24


def make_user() -> User:
    return User(
        id=USER_ID,
        name="Jane",
        email="jane@example.com",
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
    )


@pytest.fixture
def auth_service(app, session) -> AuthService:
    service = AuthService(session, "blog")
    app.state.auth_service = service
    return service


class TestRegister:
    def test_register(self, client, auth_service) -> None:
        auth_service.register_user = AsyncMock(return_value=make_user())

        response = client.post(
            "/v1/auth/register",
            json={"name": "Jane", "email": "jane@example.com", "password": "secret"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["access_token"]
        assert body["data"]["user"]["id"] == USER_ID

    def test_duplicate_email(self, client, auth_service) -> None:
        auth_service.register_user = AsyncMock(side_effect=ConflictError("email"))

        response = client.post(
            "/v1/auth/register",
            json={"name": "Jane", "email": "jane@example.com", "password": "secret"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Duplicate field value entered for email"

    def test_validation_error(self, client, auth_service) -> None:
        response = client.post(
            "/v1/auth/register",
            json={"name": "   ", "email": "jane@example.com", "password": "secret"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Please add a name"
        assert body["details"][0]["field"] == "body.name"


class TestLogin:
    def test_invalid_credentials(self, client, auth_service) -> None:
        response = client.post(
            "/v1/auth/login",
            json={"email": "nobody@example.com", "password": "secret"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid credentials"

    def test_banned(self, client, auth_service) -> None:
        auth_service.authenticate_user = AsyncMock(side_effect=UserBannedError())

        response = client.post(
            "/v1/auth/login",
            json={"email": "jane@example.com", "password": "secret"},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Your account has been banned"


class TestMe:
    def test_requires_token(self, client, auth_service) -> None:
        response = client.get("/v1/auth/me")

        assert response.status_code == 401
        assert response.json()["error"] == "Not authorized to access this route"

    def test_invalid_token(self, client, auth_service) -> None:
        response = client.get("/v1/auth/me", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401

    def test_returns_profile(self, client, auth_service) -> None:
        auth_service.require_user = AsyncMock(return_value=make_user())

        response = client.get("/v1/auth/me", headers=bearer(USER_ID))

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "jane@example.com"
        auth_service.require_user.assert_awaited_once_with(USER_ID)
