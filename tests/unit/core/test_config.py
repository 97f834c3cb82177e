"""Unit tests for application settings."""

from __future__ import annotations

import pytest

from account_service.core.config import Settings, StorageBackend


pytestmark = pytest.mark.unit


class TestSettings:
    """Tests for Settings loading and computed properties."""

    def test_test_environment_overrides(self) -> None:
        """Should load the test environment YAML on top of the base files."""
        settings = Settings(APP_ENV="test")

        assert settings.is_testing is True
        assert settings.storage_backend_enum is StorageBackend.MEMORY
        assert settings.rate_limiting.enabled is False
        assert settings.auth.password.time_cost == 1

    def test_jwt_defaults(self) -> None:
        settings = Settings(APP_ENV="test")

        assert settings.auth.jwt.algorithm == "HS256"
        assert settings.auth.jwt.access_token_expire_minutes == 15
        assert settings.auth.jwt.refresh_token_expire_days == 7

    def test_invalid_storage_backend(self) -> None:
        settings = Settings(APP_ENV="test", storage={"backend": "sqlite"})

        with pytest.raises(ValueError, match="Invalid storage backend"):
            _ = settings.storage_backend_enum

    def test_google_disabled_without_client_id(self) -> None:
        assert Settings(APP_ENV="test").google_enabled is False

    def test_google_accepted_client_ids(self) -> None:
        settings = Settings(
            APP_ENV="test",
            auth={"google": {"client_id": "web", "additional_client_ids": "ios, android"}},
        )

        assert settings.google_enabled is True
        assert settings.auth.google.accepted_client_ids == ["web", "ios", "android"]

    def test_database_url(self) -> None:
        settings = Settings(
            APP_ENV="test",
            DATABASE_PASSWORD="pw",
            database={"host": "db", "port": 5433, "name": "accounts", "user": "svc"},
        )

        assert settings.database_url == "postgresql://svc:pw@db:5433/accounts"

    def test_rate_limit_storage_uri(self) -> None:
        assert Settings(APP_ENV="test").rate_limit_storage_uri == "memory://"

        settings = Settings(
            APP_ENV="test",
            rate_limiting={"storage": "redis"},
            redis={"host": "cache", "rate_limit_db": 2},
        )
        assert settings.rate_limit_storage_uri == "redis://cache:6379/2"

    def test_environment_helpers(self) -> None:
        production = Settings(APP_ENV="production")

        assert production.is_production is True
        assert production.is_non_production is False
        assert Settings(APP_ENV="development").is_non_production is True
