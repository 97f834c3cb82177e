"""Logging configuration using Loguru.

This module provides:
- Structured JSON logging for deployed environments
- Human-readable colorized output for development
- Request-scoped context (request id, method, path) via a ContextVar
- Interception of standard library logging (uvicorn, asyncpg, httpx, arq)
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

import orjson
from loguru import logger


if TYPE_CHECKING:
    from loguru import Logger, Record


_log_context: ContextVar[dict[str, Any] | None] = ContextVar(
    "log_context", default=None
)

# Chatty third-party loggers capped at WARNING
_NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "asyncpg",
    "httpx",
    "httpcore",
    "asyncio",
    "arq",
)


class InterceptHandler(logging.Handler):
    """Forward standard library log records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk out of the logging module so Loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _merge_context(record: Record) -> None:
    """Patcher that copies the request context into every record."""
    context = _log_context.get()
    if context:
        for key, value in context.items():
            record["extra"].setdefault(key, value)


def _format_json(record: Record) -> str:
    payload: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["extra"].get("name", record["name"]),
        "function": record["function"],
        "line": record["line"],
        **{k: v for k, v in record["extra"].items() if k != "name"},
    }

    exception = record["exception"]
    if exception:
        payload["exception"] = {
            "type": exception.type.__name__ if exception.type else None,
            "value": str(exception.value) if exception.value else None,
        }

    # Loguru treats the returned string as a template; stash the rendered
    # line in extra and reference it so braces in values stay literal.
    record["extra"]["_json"] = orjson.dumps(payload, default=str).decode()
    if exception:
        return "{extra[_json]}\n{exception}\n"
    return "{extra[_json]}\n"


def _format_text(record: Record) -> str:
    extras = {k: v for k, v in record["extra"].items() if k != "name"}
    context_str = ""
    if extras:
        context_str = " | " + " ".join(f"{k}={v}" for k, v in extras.items())
    # Escape braces so Loguru does not treat values as format fields
    context_str = context_str.replace("{", "{{").replace("}", "}}")

    fmt = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>"
        f"{context_str} - "
        "<level>{message}</level>\n"
    )
    if record["exception"]:
        fmt += "{exception}\n"
    return fmt


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    *,
    is_development: bool = False,
) -> None:
    """Configure Loguru sinks and route stdlib logging through them.

    Args:
        log_level: Minimum level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: ``"json"`` or ``"text"``. Development always uses text.
        is_development: Enable colorized output and variable diagnostics.
    """
    logger.remove()
    logger.configure(patcher=_merge_context, extra={"name": "account_service"})

    use_json = log_format == "json" and not is_development
    logger.add(
        sys.stdout,
        format=_format_json if use_json else _format_text,
        level=log_level.upper(),
        colorize=not use_json,
        backtrace=True,
        diagnose=is_development,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> Logger:
    """Get a Loguru logger bound to ``name`` (typically ``__name__``)."""
    return logger.bind(name=name)


def bind_context(**kwargs: Any) -> None:
    """Add key/values to the logging context of the current request.

    Example:
        bind_context(request_id="abc-123", account_id="42")
    """
    current = dict(_log_context.get() or {})
    current.update(kwargs)
    _log_context.set(current)


def clear_context() -> None:
    """Reset the logging context; called at the start of each request."""
    _log_context.set({})


def unbind_context(*keys: str) -> None:
    """Remove specific keys from the logging context."""
    current = dict(_log_context.get() or {})
    for key in keys:
        current.pop(key, None)
    _log_context.set(current)


def get_context() -> dict[str, Any]:
    """Return a copy of the current logging context."""
    return dict(_log_context.get() or {})


def mask_email(email: str) -> str:
    """Mask the local part of an address for log output.

    >>> mask_email("alice@example.com")
    'a***@example.com'
    """
    local, sep, domain = email.partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"


__all__ = [
    "bind_context",
    "clear_context",
    "get_context",
    "get_logger",
    "logger",
    "mask_email",
    "setup_logging",
    "unbind_context",
]
