"""
Tests for authentication endpoints.
"""

import pytest
from httpx import AsyncClient

from learnhub.core.security import create_refresh_token
from learnhub.models.enums import UserStatus
from tests.conftest import API, auth_headers


class TestRegistration:
    """Tests for user registration."""

    @pytest.mark.asyncio
    async def test_register_success(self, client: AsyncClient):
        response = await client.post(
            f"{API}/auth/register",
            json={
                "email": "newuser@example.com",
                "password": "SecurePass123",
                "first_name": "New",
                "last_name": "User",
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["email"] == "newuser@example.com"
        assert data["role"] == "user"
        assert data["status"] == "active"
        assert "password" not in data
        assert "password_hash" not in data

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, client: AsyncClient, test_user):
        response = await client.post(
            f"{API}/auth/register",
            json={
                "email": "learner@example.com",
                "password": "SecurePass123",
                "first_name": "Another",
                "last_name": "User",
            },
        )

        assert response.status_code == 409
        assert "already registered" in response.json()["message"].lower()

    @pytest.mark.asyncio
    async def test_register_weak_password(self, client: AsyncClient):
        response = await client.post(
            f"{API}/auth/register",
            json={
                "email": "user@example.com",
                "password": "weak",
                "first_name": "Weak",
                "last_name": "Password",
            },
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation error"

    @pytest.mark.asyncio
    async def test_register_invalid_email(self, client: AsyncClient):
        response = await client.post(
            f"{API}/auth/register",
            json={
                "email": "not-an-email",
                "password": "SecurePass123",
                "first_name": "Bad",
                "last_name": "Email",
            },
        )

        assert response.status_code == 400


class TestLogin:
    """Tests for user login."""

    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, test_user):
        response = await client.post(
            f"{API}/auth/login",
            json={"email": "learner@example.com", "password": "Test1234!"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["refresh_token"]
        assert "refresh_token" in response.cookies

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client: AsyncClient, test_user):
        response = await client.post(
            f"{API}/auth/login",
            json={"email": "learner@example.com", "password": "WrongPass1"},
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Incorrect email or password"

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, client: AsyncClient):
        response = await client.post(
            f"{API}/auth/login",
            json={"email": "nobody@example.com", "password": "Test1234!"},
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_login_suspended_account(self, client: AsyncClient, test_user, db_session):
        test_user.status = UserStatus.SUSPENDED
        await db_session.commit()

        response = await client.post(
            f"{API}/auth/login",
            json={"email": "learner@example.com", "password": "Test1234!"},
        )

        assert response.status_code == 403


class TestTokens:
    """Tests for token refresh and protected routes."""

    @pytest.mark.asyncio
    async def test_me_with_token(self, client: AsyncClient, user_token):
        response = await client.get(f"{API}/auth/me", headers=auth_headers(user_token))

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "learner@example.com"

    @pytest.mark.asyncio
    async def test_me_without_token(self, client: AsyncClient):
        response = await client.get(f"{API}/auth/me")

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Authentication required",
            "errors": None,
        }

    @pytest.mark.asyncio
    async def test_me_with_garbage_token(self, client: AsyncClient):
        response = await client.get(f"{API}/auth/me", headers=auth_headers("not-a-jwt"))

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_token_rotation(self, client: AsyncClient, test_user):
        login = await client.post(
            f"{API}/auth/login",
            json={"email": "learner@example.com", "password": "Test1234!"},
        )
        old_refresh = login.json()["data"]["refresh_token"]

        response = await client.post(f"{API}/auth/refresh", json={"refresh_token": old_refresh})

        assert response.status_code == 200
        new_refresh = response.json()["data"]["refresh_token"]
        assert new_refresh != old_refresh

        # The old token was revoked by the rotation
        reuse = await client.post(f"{API}/auth/refresh", json={"refresh_token": old_refresh})
        assert reuse.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_rejects_unknown_token(
        self, client: AsyncClient, test_user, test_settings
    ):
        # Validly signed but never issued through login
        token = create_refresh_token(test_user.id, test_settings)

        response = await client.post(f"{API}/auth/refresh", json={"refresh_token": token})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_access_token_cannot_refresh(self, client: AsyncClient, user_token):
        response = await client.post(f"{API}/auth/refresh", json={"refresh_token": user_token})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_revokes_refresh_token(self, client: AsyncClient, test_user):
        login = await client.post(
            f"{API}/auth/login",
            json={"email": "learner@example.com", "password": "Test1234!"},
        )
        refresh = login.json()["data"]["refresh_token"]

        response = await client.post(f"{API}/auth/logout", json={"refresh_token": refresh})
        assert response.status_code == 200

        response = await client.post(f"{API}/auth/refresh", json={"refresh_token": refresh})
        assert response.status_code == 401


class TestPasswordChange:
    @pytest.mark.asyncio
    async def test_change_password(self, client: AsyncClient, user_token, test_user):
        response = await client.post(
            f"{API}/auth/change-password",
            json={"current_password": "Test1234!", "new_password": "BrandNew123"},
            headers=auth_headers(user_token),
        )
        assert response.status_code == 200

        login = await client.post(
            f"{API}/auth/login",
            json={"email": "learner@example.com", "password": "BrandNew123"},
        )
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_change_password_wrong_current(self, client: AsyncClient, user_token):
        response = await client.post(
            f"{API}/auth/change-password",
            json={"current_password": "Nope12345", "new_password": "BrandNew123"},
            headers=auth_headers(user_token),
        )

        assert response.status_code == 400
