"""Integration test fixtures.

The application is assembled by ``create_app`` with the in-memory storage
backend and driven through its lifespan, so every request passes the real
middleware stack, dependencies and exception handlers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient

from account_service.auth.permissions import Role
from account_service.cache.rate_limit import limiter
from account_service.core.config import Settings
from account_service.factory import create_app
from account_service.services.accounts import new_local_account


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from fastapi import FastAPI


pytestmark = pytest.mark.integration

API = "/api/v1"
PASSWORD = "secret123"  # noqa: S105


def build_settings(**overrides: Any) -> Settings:
    """Test settings with the in-memory backend and fast hashing."""
    values: dict[str, Any] = {
        "APP_ENV": "test",
        "JWT_ACCESS_SECRET": "integration-access-secret-0123456789",
        "JWT_REFRESH_SECRET": "integration-refresh-secret-0123456789",
        "storage": {"backend": "memory"},
        "rate_limiting": {"enabled": False},
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def test_settings() -> Settings:
    return build_settings()


@pytest.fixture
async def app(test_settings: Settings) -> AsyncGenerator[FastAPI]:
    """Create the app and run its startup and shutdown."""
    application = create_app(test_settings)
    limiter.reset()
    async with application.router.lifespan_context(application):
        yield application
    limiter.reset()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac
@pytest.fixture
def register_user(client: AsyncClient) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Register through the API and return the response body."""

    async def _register(
        *,
        name: str = "Ada Lovelace",
        email: str = "ada@example.com",
        password: str = PASSWORD,
    ) -> dict[str, Any]:
        response = await client.post(
            f"{API}/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture
def login_user(client: AsyncClient) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Sign in through the API and return the response body."""

    async def _login(email: str, password: str = PASSWORD) -> dict[str, Any]:
        response = await client.post(
            f"{API}/auth/login",
            json={"email": email, "password": password},
        )
        assert response.status_code == 200, response.text
        return response.json()

    return _login


@pytest.fixture
async def user_session(
    register_user: Callable[..., Awaitable[dict[str, Any]]],
) -> dict[str, Any]:
    """A registered user and their first session."""
    return await register_user()


@pytest.fixture
async def admin_session(
    app: FastAPI,
    login_user: Callable[..., Awaitable[dict[str, Any]]],
) -> dict[str, Any]:
    """An admin created directly in the store, then signed in."""
    admin = await new_local_account(
        name="Grace Hopper",
        email="grace@example.com",
        password=PASSWORD,
        hasher=app.state.password_hasher,
        role=Role.ADMIN,
    )
    await app.state.account_store.create(admin)
    return await login_user("grace@example.com")
