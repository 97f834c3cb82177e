"""Application error taxonomy and exception handlers.

Every failure that reaches a client is rendered by a single set of handlers
into the envelope::

    {"error": {"statusCode": 401, "message": "...", "code": "...", ...}}

Unexpected exceptions are logged with their traceback and answered with a
generic 500 so that internals never leak to the client.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from account_service.observability.logging import get_logger


if TYPE_CHECKING:
    from fastapi import Request

logger = get_logger(__name__)


class ErrorDetail(BaseModel):
    """Structured error detail for validation errors."""

    code: str
    message: str
    field: str | None = None


class ErrorBody(BaseModel):
    """Inner error object of the response envelope."""

    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True)

    status_code: int = Field(alias="statusCode")
    message: str
    code: str
    details: list[ErrorDetail] | None = None
    request_id: str | None = Field(default=None, alias="requestId")


class ErrorResponse(BaseModel):
    """Uniform error envelope."""

    error: ErrorBody


class AppException(Exception):
    """Base application exception.

    Carries the HTTP status hint, a stable machine-readable code and a
    client-safe message.
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        details: list[ErrorDetail] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self.error = error
        self.message = message
        self.details = details
        self.headers = headers
        super().__init__(message)


class InvalidCredentialsException(AppException):
    """Login failed; never says which factor was wrong."""

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="INVALID_CREDENTIALS",
            message=message,
        )


class AuthenticationRequiredException(AppException):
    """Missing, malformed or expired token."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="AUTHENTICATION_REQUIRED",
            message=message,
            headers={"WWW-Authenticate": "Bearer"},
        )


class UnverifiedEmailException(AppException):
    """Identity provider did not verify the email address."""

    def __init__(self, message: str = "Email not verified by Google") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="UNVERIFIED_EMAIL",
            message=message,
        )


class ForbiddenException(AppException):
    """Identity is known but lacks the role, permission or ownership."""

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error="FORBIDDEN",
            message=message,
        )


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="NOT_FOUND",
            message=message,
        )


class ConflictException(AppException):
    """Duplicate email, external identity or token."""

    def __init__(self, message: str) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error="CONFLICT",
            message=message,
        )


class ValidationFailedException(AppException):
    """Malformed input."""

    def __init__(
        self,
        message: str = "Request validation failed",
        details: list[ErrorDetail] | None = None,
    ) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="VALIDATION_FAILED",
            message=message,
            details=details,
        )


class ServiceUnavailableException(AppException):
    """A collaborator (store, identity provider) is not available."""

    def __init__(self, message: str = "Service temporarily unavailable") -> None:
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error="SERVICE_UNAVAILABLE",
            message=message,
        )


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: list[ErrorDetail] | None = None,
    headers: dict[str, str] | None = None,
) -> ORJSONResponse:
    """Render the error envelope."""
    body = ErrorResponse(
        error=ErrorBody(
            status_code=status_code,
            message=message,
            code=code,
            details=details,
            request_id=_get_request_id(request),
        )
    )
    return ORJSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


def _http_error_code(status_code: int) -> str:
    codes: dict[int, str] = {
        status.HTTP_401_UNAUTHORIZED: "AUTHENTICATION_REQUIRED",
        status.HTTP_403_FORBIDDEN: "FORBIDDEN",
        status.HTTP_404_NOT_FOUND: "NOT_FOUND",
        status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    }
    return codes.get(status_code, "HTTP_ERROR")


def _validation_details(errors: Any) -> list[ErrorDetail]:
    return [
        ErrorDetail(
            code="VALIDATION_ERROR",
            message=error["msg"],
            field=".".join(str(loc) for loc in error["loc"] if loc != "body"),
        )
        for error in errors
    ]


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with the FastAPI application."""

    @app.exception_handler(AppException)
    async def app_exception_handler(
        request: Request,
        exc: AppException,
    ) -> ORJSONResponse:
        """Handle application exceptions."""
        return error_response(
            request,
            status_code=exc.status_code,
            code=exc.error,
            message=exc.message,
            details=exc.details,
            headers=exc.headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> ORJSONResponse:
        """Handle Starlette HTTP exceptions (unknown route, bad method, ...)."""
        return error_response(
            request,
            status_code=exc.status_code,
            code=_http_error_code(exc.status_code),
            message=str(exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> ORJSONResponse:
        """Handle request validation errors as 400."""
        details = _validation_details(exc.errors())
        message = details[0].message if len(details) == 1 else "Request validation failed"
        return error_response(
            request,
            status_code=status.HTTP_400_BAD_REQUEST,
            code="VALIDATION_FAILED",
            message=message,
            details=details,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request,
        exc: Exception,
    ) -> ORJSONResponse:
        """Handle unexpected exceptions."""
        logger.opt(exception=exc).error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
        )
        return error_response(
            request,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code="INTERNAL_SERVER_ERROR",
            message="Internal server error",
        )
