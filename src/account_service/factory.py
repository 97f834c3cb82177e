"""Application factory for creating FastAPI instances.

This module provides the create_app factory function that:
- Configures the FastAPI application with appropriate settings
- Sets up the middleware stack in the correct order
- Registers exception and rate limit handlers
- Mounts API routers
- Configures metrics and tracing
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from account_service.api.v1.router import router as v1_router
from account_service.cache.rate_limit import setup_rate_limiting
from account_service.core.config import Settings, get_settings
from account_service.core.events import lifespan
from account_service.core.exceptions import setup_exception_handlers
from account_service.core.middleware import (
    LoggingMiddleware,
    RequestIDMiddleware,
    SecurityHeadersMiddleware,
    TimingMiddleware,
)
from account_service.observability.metrics import setup_metrics
from account_service.observability.tracing import setup_tracing
from account_service.schemas import RootResponse


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Args:
        settings: Optional settings override. If not provided, uses get_settings().

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    prefix = settings.api.v1_prefix
    docs_enabled = settings.is_non_production

    app = FastAPI(
        title=settings.app.name,
        version=settings.app.version,
        description="Account service: registration, sign-in, sessions and RBAC",
        lifespan=lifespan,
        docs_url=f"{prefix}/docs" if docs_enabled else None,
        redoc_url=f"{prefix}/redoc" if docs_enabled else None,
        openapi_url=f"{prefix}/openapi.json" if docs_enabled else None,
        debug=settings.app.debug,
    )

    # Read by the lifespan and by route dependencies
    app.state.settings = settings

    setup_exception_handlers(app)
    setup_rate_limiting(app, settings)

    # Middleware (order matters - first added = last executed)
    _setup_middleware(app, settings)

    _setup_routers(app, settings)

    # Observability (after routes are mounted)
    setup_tracing(app, settings)
    setup_metrics(app, settings)

    return app


def _setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure middleware stack.

    Order from request perspective:
    1. SecurityHeadersMiddleware
    2. RequestIDMiddleware
    3. TimingMiddleware
    4. LoggingMiddleware
    5. GZipMiddleware
    6. CORSMiddleware
    7. SlowAPIMiddleware (added by setup_rate_limiting)
    """
    prefix = settings.api.v1_prefix

    if settings.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID", "X-Process-Time"],
        )

    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_middleware(
        LoggingMiddleware,
        exclude_paths={
            f"{prefix}/health",
            f"{prefix}/ready",
            f"{prefix}/metrics",
            "/favicon.ico",
        },
    )

    app.add_middleware(TimingMiddleware)

    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        SecurityHeadersMiddleware,
        no_store_prefix=prefix,
        hsts=settings.is_production,
    )


def _setup_routers(app: FastAPI, settings: Settings) -> None:
    """Mount API routers.

    Args:
        app: FastAPI application instance.
        settings: Application settings.
    """
    prefix = settings.api.v1_prefix
    app.include_router(v1_router, prefix=prefix)

    @app.get("/", response_model=RootResponse, tags=["Root"], summary="Service info")
    async def root() -> RootResponse:
        """Return basic service information."""
        return RootResponse(
            service=settings.app.name,
            version=settings.app.version,
            status="operational",
            docs=f"{prefix}/docs" if settings.is_non_production else "disabled",
            health=f"{prefix}/health",
        )
