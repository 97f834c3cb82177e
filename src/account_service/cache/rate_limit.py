"""Rate limiting using SlowAPI.

This module provides:
- The process-wide limiter (storage ``memory://`` or Redis)
- A stricter IP-keyed limit for credential endpoints
- A 429 handler rendering the standard error envelope
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from account_service.core.config import get_settings
from account_service.core.exceptions import error_response
from account_service.observability.logging import get_logger


if TYPE_CHECKING:
    from fastapi import FastAPI
    from fastapi.responses import ORJSONResponse
    from starlette.requests import Request

    from account_service.core.config import Settings

logger = get_logger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


def _get_rate_limit_key(request: Request) -> str:
    """Get rate limit key from request.

    Uses the authenticated account id if available, otherwise the client IP.
    """
    user = getattr(request.state, "user", None)
    if user is not None:
        return f"user:{user.id}"
    return str(get_remote_address(request))


def _get_auth_rate_limit_key(request: Request) -> str:
    """Key credential endpoints by IP address only."""
    return f"auth:{get_remote_address(request)}"


def create_limiter(settings: Settings) -> Limiter:
    """Create and configure the rate limiter."""
    return Limiter(
        key_func=_get_rate_limit_key,
        default_limits=[settings.rate_limiting.default],
        storage_uri=settings.rate_limit_storage_uri,
        strategy="fixed-window",
        enabled=settings.rate_limiting.enabled,
    )


# Global limiter instance
limiter = create_limiter(get_settings())

# Credential-endpoint limit, replaced by setup_rate_limiting
_auth_limit: dict[str, str] = {"value": get_settings().rate_limiting.auth}


async def rate_limit_exceeded_handler(
    request: Request,
    exc: Exception,
) -> ORJSONResponse:
    """Answer 429 in the standard error envelope."""
    assert isinstance(exc, RateLimitExceeded)
    logger.warning(
        "Rate limit exceeded",
        path=request.url.path,
        method=request.method,
        client_ip=get_remote_address(request),
        limit=str(exc.detail),
    )
    return error_response(
        request,
        status_code=429,
        code="RATE_LIMIT_EXCEEDED",
        message=RATE_LIMIT_MESSAGE,
    )


def setup_rate_limiting(app: FastAPI, settings: Settings) -> None:
    """Configure rate limiting for the FastAPI application.

    Args:
        app: The FastAPI application instance.
        settings: Application settings.
    """
    limiter.enabled = settings.rate_limiting.enabled
    _auth_limit["value"] = settings.rate_limiting.auth
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    logger.info(
        "Rate limiting configured",
        enabled=settings.rate_limiting.enabled,
        default=settings.rate_limiting.default,
        auth=settings.rate_limiting.auth,
    )


def rate_limit_auth() -> Any:
    """Apply the credential-endpoint rate limit (stricter, IP-based).

    Returns:
        Rate limit decorator (slowapi Limiter.limit return type).

    Example:
        @router.post("/login")
        @rate_limit_auth()
        async def login(request: Request, body: LoginRequest):
            ...
    """
    return limiter.limit(
        lambda: _auth_limit["value"],
        key_func=_get_auth_rate_limit_key,
    )
