"""ARQ worker configuration.

This module provides:
- Worker settings and configuration
- Startup/shutdown handlers opening the ledger store
- The hourly refresh-token sweep

Run with: arq account_service.workers.arq.WorkerSettings
"""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from typing import TYPE_CHECKING, Any, ClassVar

from arq import cron
from arq.connections import RedisSettings

from account_service.core.config import StorageBackend, get_settings
from account_service.database.connection import (
    close_database_pool,
    init_database_pool,
)
from account_service.database.repositories import (
    InMemoryRefreshTokenStore,
    RefreshTokenRepository,
)
from account_service.observability.logging import get_logger, setup_logging
from account_service.workers.tasks.maintenance import purge_expired_refresh_tokens


if TYPE_CHECKING:
    from arq.cron import CronJob


logger = get_logger(__name__)

# Type alias for ARQ worker functions
WorkerFunction = Callable[..., Coroutine[Any, Any, Any]]


async def startup(ctx: dict[str, Any]) -> None:
    """Worker startup handler.

    Args:
        ctx: Worker context dictionary for storing shared state.
    """
    settings = get_settings()

    setup_logging(
        log_level=settings.logging.level,
        log_format=settings.logging.format,
        is_development=settings.is_development,
    )
    logger.info(
        "ARQ worker starting",
        environment=settings.APP_ENV,
        storage=settings.storage.backend,
    )

    ctx["settings"] = settings

    if settings.storage_backend_enum == StorageBackend.MEMORY:
        # Nothing is shared with the API process in this mode
        logger.warning("Worker started with in-memory storage; sweeps are no-ops")
        ctx["refresh_tokens"] = InMemoryRefreshTokenStore()
        return

    pool = await init_database_pool(settings)
    ctx["refresh_tokens"] = RefreshTokenRepository(pool)


async def shutdown(ctx: dict[str, Any]) -> None:
    """Worker shutdown handler.

    Args:
        ctx: Worker context dictionary containing initialized resources.
    """
    logger.info("ARQ worker shutting down")
    ctx.pop("refresh_tokens", None)
    await close_database_pool()


def get_redis_settings() -> RedisSettings:
    """Get Redis settings for ARQ.

    Returns:
        RedisSettings configured for the job queue.
    """
    settings = get_settings()

    return RedisSettings(
        host=settings.redis.host,
        port=settings.redis.port,
        username=settings.redis.user,
        password=settings.REDIS_PASSWORD or None,
        database=settings.redis.queue_db,
    )


class WorkerSettings:
    """ARQ worker settings class.

    This class is used by the arq CLI to configure the worker.
    """

    redis_settings = get_redis_settings()

    queue_name = get_settings().arq.queue_name
    health_check_key = get_settings().arq.health_check_key

    on_startup = startup
    on_shutdown = shutdown

    # Job timeout in seconds
    job_timeout = 300

    max_jobs = 10

    # How long to keep job results (seconds)
    keep_result = 3600

    functions: ClassVar[list[WorkerFunction]] = [
        purge_expired_refresh_tokens,
    ]

    cron_jobs: ClassVar[list[CronJob]] = [
        cron(
            purge_expired_refresh_tokens,  # type: ignore[arg-type]
            minute=get_settings().arq.purge_minute,
            run_at_startup=True,
        ),
    ]
