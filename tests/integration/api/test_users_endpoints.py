"""Integration tests for the account management endpoints.

Tests cover:
- Own-profile access for regular users
- Ownership enforcement and admin override
- Permission-gated listing
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from httpx import AsyncClient


pytestmark = pytest.mark.integration

API = "/api/v1"


def _auth(body: dict[str, Any]) -> dict[str, str]:
    return {"Authorization": f"Bearer {body['tokens']['accessToken']}"}


@pytest.fixture
async def other_session(
    register_user: Callable[..., Awaitable[dict[str, Any]]],
) -> dict[str, Any]:
    return await register_user(name="Alan Turing", email="alan@example.com")


class TestAuthentication:
    """Tests for bearer token handling on protected routes."""

    async def test_missing_token(self, client: AsyncClient) -> None:
        response = await client.get(f"{API}/users")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Authentication required"

    async def test_invalid_token(self, client: AsyncClient) -> None:
        response = await client.get(
            f"{API}/users", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid access token"


class TestListUsers:
    """Tests for GET /users."""

    async def test_user_is_forbidden(
        self, client: AsyncClient, user_session: dict[str, Any]
    ) -> None:
        response = await client.get(f"{API}/users", headers=_auth(user_session))

        assert response.status_code == 403
        assert response.json()["error"]["message"] == (
            "Permission denied. Required permission: getUsers"
        )

    async def test_admin_lists_everyone(
        self,
        client: AsyncClient,
        user_session: dict[str, Any],
        admin_session: dict[str, Any],
    ) -> None:
        response = await client.get(f"{API}/users", headers=_auth(admin_session))

        assert response.status_code == 200
        emails = {account["email"] for account in response.json()}
        assert emails == {"ada@example.com", "grace@example.com"}


class TestGetUser:
    """Tests for GET /users/{account_id}."""

    async def test_own_profile(
        self, client: AsyncClient, user_session: dict[str, Any]
    ) -> None:
        user_id = user_session["user"]["id"]

        response = await client.get(f"{API}/users/{user_id}", headers=_auth(user_session))

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == user_id
        assert body["name"] == "Ada Lovelace"
        assert "passwordHash" not in body
        assert "externalId" not in body

    async def test_other_profile_forbidden(
        self,
        client: AsyncClient,
        user_session: dict[str, Any],
        other_session: dict[str, Any],
    ) -> None:
        response = await client.get(
            f"{API}/users/{other_session['user']['id']}", headers=_auth(user_session)
        )

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "You can only access your own profile"

    async def test_admin_reads_any_profile(
        self,
        client: AsyncClient,
        user_session: dict[str, Any],
        admin_session: dict[str, Any],
    ) -> None:
        response = await client.get(
            f"{API}/users/{user_session['user']['id']}", headers=_auth(admin_session)
        )

        assert response.status_code == 200
        assert response.json()["email"] == "ada@example.com"

    async def test_admin_missing_account(
        self, client: AsyncClient, admin_session: dict[str, Any]
    ) -> None:
        response = await client.get(
            f"{API}/users/00000000-0000-0000-0000-000000000000",
            headers=_auth(admin_session),
        )

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "User not found"


class TestUpdateUser:
    """Tests for PUT /users/{account_id}."""

    async def test_update_own_profile(
        self, client: AsyncClient, user_session: dict[str, Any]
    ) -> None:
        user_id = user_session["user"]["id"]

        response = await client.put(
            f"{API}/users/{user_id}",
            json={"name": "Ada King", "email": "Countess@Example.com"},
            headers=_auth(user_session),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Ada King"
        assert body["email"] == "countess@example.com"
        assert body["role"] == "user"

    async def test_role_cannot_be_changed(
        self, client: AsyncClient, user_session: dict[str, Any]
    ) -> None:
        """Should ignore fields other than name and email."""
        user_id = user_session["user"]["id"]

        response = await client.put(
            f"{API}/users/{user_id}",
            json={"name": "Ada King", "role": "admin"},
            headers=_auth(user_session),
        )

        assert response.status_code == 200
        assert response.json()["role"] == "user"

    async def test_empty_update(
        self, client: AsyncClient, user_session: dict[str, Any]
    ) -> None:
        response = await client.put(
            f"{API}/users/{user_session['user']['id']}",
            json={},
            headers=_auth(user_session),
        )

        assert response.status_code == 400

    async def test_email_taken(
        self,
        client: AsyncClient,
        user_session: dict[str, Any],
        other_session: dict[str, Any],
    ) -> None:
        response = await client.put(
            f"{API}/users/{user_session['user']['id']}",
            json={"email": "alan@example.com"},
            headers=_auth(user_session),
        )

        assert response.status_code == 409

    async def test_other_user_forbidden(
        self,
        client: AsyncClient,
        user_session: dict[str, Any],
        other_session: dict[str, Any],
    ) -> None:
        response = await client.put(
            f"{API}/users/{other_session['user']['id']}",
            json={"name": "Hacked"},
            headers=_auth(user_session),
        )

        assert response.status_code == 403

    async def test_admin_updates_anyone(
        self,
        client: AsyncClient,
        user_session: dict[str, Any],
        admin_session: dict[str, Any],
    ) -> None:
        response = await client.put(
            f"{API}/users/{user_session['user']['id']}",
            json={"name": "Renamed By Admin"},
            headers=_auth(admin_session),
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Renamed By Admin"


class TestDeleteUser:
    """Tests for DELETE /users/{account_id}."""

    async def test_delete_own_account(
        self, client: AsyncClient, user_session: dict[str, Any]
    ) -> None:
        """Should delete the account and end its sessions."""
        response = await client.delete(
            f"{API}/users/{user_session['user']['id']}", headers=_auth(user_session)
        )

        assert response.status_code == 200
        assert response.json() == {"message": "User deleted successfully"}

        refresh = await client.post(
            f"{API}/auth/refresh",
            json={"refreshToken": user_session["tokens"]["refreshToken"]},
        )
        assert refresh.status_code == 401

        login = await client.post(
            f"{API}/auth/login",
            json={"email": "ada@example.com", "password": "secret123"},
        )
        assert login.status_code == 401

    async def test_other_user_forbidden(
        self,
        client: AsyncClient,
        user_session: dict[str, Any],
        other_session: dict[str, Any],
    ) -> None:
        response = await client.delete(
            f"{API}/users/{other_session['user']['id']}", headers=_auth(user_session)
        )

        assert response.status_code == 403

    async def test_admin_deletes_anyone(
        self,
        client: AsyncClient,
        user_session: dict[str, Any],
        admin_session: dict[str, Any],
    ) -> None:
        response = await client.delete(
            f"{API}/users/{user_session['user']['id']}", headers=_auth(admin_session)
        )

        assert response.status_code == 200

        again = await client.delete(
            f"{API}/users/{user_session['user']['id']}", headers=_auth(admin_session)
        )
        assert again.status_code == 404
