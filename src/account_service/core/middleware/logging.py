"""Access logging middleware.

Logs one line when a request starts and one when it completes. The
completion line names the authenticated account (read from
``request.state.user``, set by the request authenticator) and marks
requests that were rejected as unauthenticated or forbidden.
Authorization headers and bodies are never logged.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from account_service.observability.logging import bind_context, get_logger

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

logger = get_logger(__name__)

_DENIED = {401: "unauthenticated", 403: "forbidden"}


def client_ip(request: Request) -> str:
    """Client address, preferring the first ``X-Forwarded-For`` hop."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Structured access log for every non-excluded request."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        exclude_paths: set[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.exclude_paths = exclude_paths or set()

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        bind_context(
            method=request.method,
            path=request.url.path,
            client_ip=client_ip(request),
        )
        logger.info("Request started")

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 2)

        fields: dict[str, Any] = {
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
        user = getattr(request.state, "user", None)
        if user is not None:
            fields["account_id"] = user.id
            fields["role"] = user.role
        if response.status_code in _DENIED:
            fields["access"] = _DENIED[response.status_code]

        log = logger.warning if response.status_code >= 500 else logger.info
        log("Request completed", **fields)
        return response
