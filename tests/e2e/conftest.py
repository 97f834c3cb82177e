"""E2E test fixtures.

Runs complete user journeys against the assembled application, once on
the in-memory backend and once on PostgreSQL (via testcontainers, skipped
when Docker is not available).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
from docker.errors import DockerException
from httpx import ASGITransport, AsyncClient
from testcontainers.postgres import PostgresContainer

from account_service.cache.rate_limit import limiter
from account_service.core.config import Settings
from account_service.factory import create_app


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Generator

    from fastapi import FastAPI


pytestmark = pytest.mark.e2e


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer]:
    """Start a PostgreSQL container for the test session."""
    try:
        container = PostgresContainer("postgres:16-alpine")
        container.start()
    except DockerException as e:
        pytest.skip(f"Docker is not available: {e}")
    try:
        yield container
    finally:
        container.stop()


def _storage_overrides(request: pytest.FixtureRequest) -> dict[str, Any]:
    if request.param == "memory":
        return {"storage": {"backend": "memory"}}

    postgres: PostgresContainer = request.getfixturevalue("postgres_container")
    return {
        "storage": {"backend": "postgres"},
        "database": {
            "host": postgres.get_container_host_ip(),
            "port": int(postgres.get_exposed_port(5432)),
            "name": postgres.dbname,
            "user": postgres.username,
            "min_pool_size": 1,
            "max_pool_size": 4,
        },
        "DATABASE_PASSWORD": postgres.password,
    }


@pytest.fixture(params=["memory", "postgres"])
def e2e_settings(request: pytest.FixtureRequest) -> Settings:
    """Settings for one storage backend."""
    return Settings(
        APP_ENV="test",
        JWT_ACCESS_SECRET="e2e-access-secret-0123456789abcdef",
        JWT_REFRESH_SECRET="e2e-refresh-secret-0123456789abcdef",
        rate_limiting={"enabled": False},
        **_storage_overrides(request),
    )


@pytest.fixture
async def app(e2e_settings: Settings) -> AsyncGenerator[FastAPI]:
    """Start the application against a clean store."""
    application = create_app(e2e_settings)
    limiter.reset()
    async with application.router.lifespan_context(application):
        pool = getattr(application.state.account_store, "pool", None)
        if pool is not None:
            async with pool.acquire() as conn:
                await conn.execute("TRUNCATE accounts CASCADE")
        yield application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac
