"""Application lifespan event handlers.

Startup builds the object graph once and parks it on ``app.state``:

- stores (PostgreSQL pool or in-memory dictionaries)
- token codec and password hasher
- the optional Google identity provider
- account, credential, federation and session services

Shutdown releases the HTTP client, the pool and the tracer.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from account_service.auth.jwt import TokenCodec
from account_service.auth.passwords import PasswordHasher
from account_service.auth.providers import GoogleIdentityProvider
from account_service.core.config import StorageBackend, get_settings
from account_service.database.connection import (
    close_database_pool,
    init_database_pool,
)
from account_service.database.repositories import (
    AccountRepository,
    InMemoryAccountStore,
    InMemoryRefreshTokenStore,
    RefreshTokenRepository,
)
from account_service.database.schema import apply_schema
from account_service.observability.logging import get_logger, setup_logging
from account_service.observability.tracing import shutdown_tracing
from account_service.services.accounts import AccountService
from account_service.services.auth import (
    CredentialAuthenticator,
    FederatedAuthenticator,
    FederatedIdentityReconciler,
    SessionIssuer,
)


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from fastapi import FastAPI

    from account_service.auth.providers import IdentityProvider
    from account_service.core.config import Settings
    from account_service.database.repositories import AccountStore, RefreshTokenStore

logger = get_logger(__name__)


async def _init_stores(settings: Settings) -> tuple[AccountStore, RefreshTokenStore]:
    """Open the configured storage backend."""
    backend = settings.storage_backend_enum
    if backend == StorageBackend.MEMORY:
        logger.warning("Using in-memory storage; data is lost on restart")
        return InMemoryAccountStore(), InMemoryRefreshTokenStore()

    pool = await init_database_pool(settings)
    await apply_schema(pool)
    return AccountRepository(pool), RefreshTokenRepository(pool)


async def _init_identity_provider(settings: Settings) -> IdentityProvider | None:
    """Initialize Google sign-in when a client id is configured (non-critical)."""
    if not settings.google_enabled:
        logger.info("Google sign-in disabled (no client id configured)")
        return None

    provider = GoogleIdentityProvider.from_settings(settings)
    await provider.initialize()
    logger.info(
        "Google identity provider initialized",
        redirect_flow=provider.supports_redirect_flow,
    )
    return provider


async def _startup(app: FastAPI, settings: Settings) -> None:
    """Initialize all application services during startup.

    Args:
        app: The FastAPI application instance.
        settings: Application settings.
    """
    setup_logging(
        log_level=settings.logging.level,
        log_format=settings.logging.format,
        is_development=settings.is_development,
    )
    logger.info(
        "Starting application",
        app_name=settings.app.name,
        environment=settings.APP_ENV,
        storage=settings.storage.backend,
    )

    # Critical: a misconfigured codec or unreachable database aborts startup
    codec = TokenCodec.from_settings(settings)
    hasher = PasswordHasher.from_settings(settings)
    accounts, refresh_tokens = await _init_stores(settings)

    provider = await _init_identity_provider(settings)

    app.state.token_codec = codec
    app.state.password_hasher = hasher
    app.state.account_store = accounts
    app.state.refresh_token_store = refresh_tokens
    app.state.identity_provider = provider

    app.state.account_service = AccountService(accounts, refresh_tokens, hasher)
    app.state.credential_authenticator = CredentialAuthenticator(accounts, hasher)
    app.state.federated_authenticator = FederatedAuthenticator(
        provider,
        FederatedIdentityReconciler(accounts),
    )
    app.state.session_issuer = SessionIssuer(codec, refresh_tokens, accounts)

    logger.info("Application startup complete")


async def _shutdown(app: FastAPI) -> None:
    """Shutdown all application services.

    Args:
        app: The FastAPI application instance.
    """
    logger.info("Shutting down application")

    provider: IdentityProvider | None = getattr(app.state, "identity_provider", None)
    if provider is not None:
        await provider.shutdown()
        logger.debug("Identity provider shutdown")

    # No-op for the in-memory backend
    await close_database_pool()

    # Flush pending spans
    shutdown_tracing()

    logger.info("Application shutdown complete")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan events.

    Uses the settings the app was created with, falling back to the
    cached global settings.

    Args:
        app: The FastAPI application instance.

    Yields:
        None - control returns to the application to handle requests.
    """
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    await _startup(app, settings)
    try:
        yield
    finally:
        await _shutdown(app)
