"""Custom middleware components."""

from account_service.core.middleware.logging import LoggingMiddleware
from account_service.core.middleware.request_id import RequestIDMiddleware
from account_service.core.middleware.security_headers import SecurityHeadersMiddleware
from account_service.core.middleware.timing import TimingMiddleware

__all__ = [
    "LoggingMiddleware",
    "RequestIDMiddleware",
    "SecurityHeadersMiddleware",
    "TimingMiddleware",
]
