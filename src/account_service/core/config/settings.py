"""Application configuration using Pydantic Settings with YAML support.

Configuration is organised by domain in YAML files under ``config/``:
- ``config/base/*.yaml`` holds defaults shared by every environment
- ``config/environments/{APP_ENV}/*.yaml`` holds environment overrides
- Environment variables (``AUTH__JWT__ISSUER=...``) override both
- Secrets are only read from the environment or ``.env``
"""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache
from typing import TYPE_CHECKING, Annotated

from pydantic import BaseModel, BeforeValidator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_source import MultiYamlConfigSettingsSource


if TYPE_CHECKING:
    from pydantic_settings import PydanticBaseSettingsSource


class StorageBackend(StrEnum):
    """Persistence backend for accounts and refresh tokens.

    - POSTGRES: asyncpg connection pool (production)
    - MEMORY: process-local dictionaries (local runs and tests)
    """

    POSTGRES = "postgres"
    MEMORY = "memory"


def parse_list(v: str | list[str]) -> list[str]:
    """Parse comma-separated string or list into list of strings."""
    if isinstance(v, str):
        return [x.strip() for x in v.split(",") if x.strip()]
    return v


# =============================================================================
# Nested Configuration Models (from YAML)
# =============================================================================


class AppSettings(BaseModel):
    """Application identity settings."""

    name: str = "Account Service"
    version: str = "0.1.0"
    debug: bool = False


class ServerSettings(BaseModel):
    """Server configuration settings."""

    host: str = "127.0.0.1"
    port: int = 8000


class ApiSettings(BaseModel):
    """API configuration settings."""

    v1_prefix: str = "/api/v1"
    cors_origins: Annotated[list[str], BeforeValidator(parse_list)] = []


class JwtSettings(BaseModel):
    """Session token settings."""

    algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    issuer: str = "boilerplate"
    audience: str = "boilerplate-users"


class PasswordSettings(BaseModel):
    """Argon2id cost parameters."""

    time_cost: int = 3
    memory_cost: int = 65536  # KiB
    parallelism: int = 4


class GoogleSettings(BaseModel):
    """Google OAuth 2.0 / OpenID Connect settings."""

    client_id: str | None = None
    # Mobile apps sign ID tokens for their own client ids
    additional_client_ids: Annotated[list[str], BeforeValidator(parse_list)] = []
    redirect_uri: str | None = None
    authorization_url: str = "https://accounts.google.com/o/oauth2/v2/auth"
    token_url: str = "https://oauth2.googleapis.com/token"
    jwks_url: str = "https://www.googleapis.com/oauth2/v3/certs"
    issuers: list[str] = ["accounts.google.com", "https://accounts.google.com"]
    scopes: str = "openid email profile"
    timeout: float = 5.0
    jwks_cache_ttl: int = 3600
    state_ttl_seconds: int = 600

    @property
    def accepted_client_ids(self) -> list[str]:
        """Client ids accepted as ID token audience."""
        ids = [self.client_id] if self.client_id else []
        return ids + [cid for cid in self.additional_client_ids if cid not in ids]


class AuthSettings(BaseModel):
    """Authentication configuration settings."""

    jwt: JwtSettings = JwtSettings()
    password: PasswordSettings = PasswordSettings()
    google: GoogleSettings = GoogleSettings()


class StorageSettings(BaseModel):
    """Storage backend selection."""

    backend: str = "postgres"


class DatabaseSettings(BaseModel):
    """PostgreSQL database configuration settings."""

    host: str = "localhost"
    port: int = 5432
    name: str = "accounts"
    db_schema: str = "public"  # PostgreSQL schema, used as search_path
    user: str | None = None
    min_pool_size: int = 2
    max_pool_size: int = 10
    command_timeout: float = 10.0  # seconds
    ssl: bool = False


class RedisSettings(BaseModel):
    """Redis configuration settings."""

    host: str = "localhost"
    port: int = 6379
    user: str | None = None  # Redis ACL username (Redis 6.0+)
    queue_db: int = 1
    rate_limit_db: int = 2


class RateLimitingSettings(BaseModel):
    """Rate limiting configuration."""

    enabled: bool = True
    storage: str = "memory"  # "memory" or "redis"
    default: str = "100/15minutes"
    auth: str = "10/minute"


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    level: str = "INFO"
    format: str = "json"


class TracingSettings(BaseModel):
    """Tracing configuration settings."""

    enabled: bool = True
    otlp_endpoint: str | None = None


class MetricsSettings(BaseModel):
    """Metrics configuration settings."""

    enabled: bool = True


class ObservabilitySettings(BaseModel):
    """Observability configuration settings."""

    tracing: TracingSettings = TracingSettings()
    metrics: MetricsSettings = MetricsSettings()


class ArqSettings(BaseModel):
    """ARQ background worker configuration."""

    queue_name: str = "accounts:queue:jobs"
    health_check_key: str = "accounts:queue:health-check"
    purge_minute: int = 0  # minute of every hour the ledger sweep runs


# =============================================================================
# Main Settings Class
# =============================================================================


class Settings(BaseSettings):
    """Application settings with YAML + environment variable support.

    Configuration is loaded from multiple sources with the following priority
    (highest to lowest):
    1. Values passed to ``Settings()``
    2. Environment variables
    3. .env file (secrets only)
    4. Environment-specific YAML files (config/environments/{APP_ENV}/)
    5. Base YAML files (config/base/)
    6. Default values in code

    Environment variables can override any setting using the nested delimiter '__'.
    For example: AUTH__JWT__ISSUER=my-issuer overrides auth.jwt.issuer.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        case_sensitive=False,
        env_nested_delimiter="__",
    )

    # =========================================================================
    # Environment Selection (from .env)
    # =========================================================================
    APP_ENV: str = "development"

    # =========================================================================
    # Nested Configuration Sections (from YAML)
    # =========================================================================
    app: AppSettings = AppSettings()
    server: ServerSettings = ServerSettings()
    api: ApiSettings = ApiSettings()
    auth: AuthSettings = AuthSettings()
    storage: StorageSettings = StorageSettings()
    database: DatabaseSettings = DatabaseSettings()
    redis: RedisSettings = RedisSettings()
    rate_limiting: RateLimitingSettings = RateLimitingSettings()
    logging: LoggingSettings = LoggingSettings()
    observability: ObservabilitySettings = ObservabilitySettings()
    arq: ArqSettings = ArqSettings()

    # =========================================================================
    # Secrets (from .env only - never in YAML)
    # =========================================================================
    JWT_ACCESS_SECRET: str = ""
    JWT_REFRESH_SECRET: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    DATABASE_PASSWORD: str = ""
    REDIS_PASSWORD: str = ""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings loading order.

        Priority (highest to lowest):
        1. init_settings - Values passed to Settings()
        2. env_settings - Environment variables
        3. dotenv_settings - .env file (secrets)
        4. yaml_settings - YAML files (base + environment)
        5. file_secret_settings - Docker secrets
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            MultiYamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    # =========================================================================
    # Computed Fields
    # =========================================================================

    @property
    def storage_backend_enum(self) -> StorageBackend:
        """Get storage backend as enum with validation."""
        try:
            return StorageBackend(self.storage.backend.lower())
        except ValueError:
            msg = (
                f"Invalid storage backend: {self.storage.backend}. "
                f"Must be one of: {', '.join(b.value for b in StorageBackend)}"
            )
            raise ValueError(msg) from None

    @property
    def google_enabled(self) -> bool:
        """Whether Google sign-in has enough configuration to run."""
        return bool(self.auth.google.accepted_client_ids)

    def _build_redis_url(self, db: int) -> str:
        """Build Redis connection URL with optional authentication.

        URL format: redis://[user:password@]host:port/db

        Args:
            db: Redis database number

        Returns:
            Redis connection URL string
        """
        auth_part = ""
        if self.redis.user and self.REDIS_PASSWORD:
            auth_part = f"{self.redis.user}:{self.REDIS_PASSWORD}@"
        elif self.REDIS_PASSWORD:
            auth_part = f":{self.REDIS_PASSWORD}@"
        elif self.redis.user:
            auth_part = f"{self.redis.user}@"

        return f"redis://{auth_part}{self.redis.host}:{self.redis.port}/{db}"

    @property
    def redis_rate_limit_url(self) -> str:
        """Build Redis rate limit connection URL."""
        return self._build_redis_url(self.redis.rate_limit_db)

    @property
    def rate_limit_storage_uri(self) -> str:
        """Storage URI handed to the rate limiter."""
        if self.rate_limiting.storage == "redis":
            return self.redis_rate_limit_url
        return "memory://"

    @property
    def database_url(self) -> str:
        """Build PostgreSQL connection URL.

        URL format: postgresql://[user:password@]host:port/database
        """
        auth_part = ""
        if self.database.user and self.DATABASE_PASSWORD:
            auth_part = f"{self.database.user}:{self.DATABASE_PASSWORD}@"
        elif self.database.user:
            auth_part = f"{self.database.user}@"

        return (
            f"postgresql://{auth_part}{self.database.host}:"
            f"{self.database.port}/{self.database.name}"
        )

    # =========================================================================
    # Environment Helpers
    # =========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.APP_ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.APP_ENV == "production"

    @property
    def is_non_production(self) -> bool:
        """Check if running in a non-production environment.

        Returns True for local, test, and development environments where
        API documentation and development secrets are allowed.
        """
        return self.APP_ENV in ("local", "test", "development")

    @property
    def is_testing(self) -> bool:
        """Check if running in test environment."""
        return self.APP_ENV == "test"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Using lru_cache ensures settings are only loaded once,
    improving performance and consistency.
    """
    return Settings()
