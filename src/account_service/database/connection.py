"""PostgreSQL connection pool management.

The pool is created in the application lifespan (and in the worker's
startup hook) and shared by the repositories.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import asyncpg

from account_service.observability.logging import get_logger


if TYPE_CHECKING:
    from asyncpg import Pool

    from account_service.core.config import Settings

logger = get_logger(__name__)

# Pool state container (avoids global statement for mutation)
_state: dict[str, Pool | None] = {"pool": None}


async def init_database_pool(settings: Settings) -> Pool:
    """Create the asyncpg pool and verify connectivity.

    Args:
        settings: Application settings.

    Returns:
        The initialized pool.
    """
    db = settings.database
    logger.info(
        "Initializing database connection pool",
        host=db.host,
        port=db.port,
        database=db.name,
    )

    pool = await asyncpg.create_pool(
        host=db.host,
        port=db.port,
        database=db.name,
        user=db.user,
        password=settings.DATABASE_PASSWORD or None,
        min_size=db.min_pool_size,
        max_size=db.max_pool_size,
        command_timeout=db.command_timeout,
        ssl=True if db.ssl else None,
        server_settings={"search_path": db.db_schema},
    )

    try:
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
    except (asyncpg.PostgresError, OSError):
        logger.exception("Failed to connect to database")
        await pool.close()
        raise

    _state["pool"] = pool
    logger.info("Database connection established successfully")
    return pool


async def close_database_pool() -> None:
    """Close the pool if it was opened."""
    pool = _state["pool"]
    if pool is not None:
        await pool.close()
        _state["pool"] = None
        logger.info("Database connection pool closed")


def get_database_pool() -> Pool:
    """Get the database connection pool.

    Raises:
        RuntimeError: If pool is not initialized.
    """
    pool = _state["pool"]
    if pool is None:
        msg = "Database pool not initialized. Call init_database_pool() first."
        raise RuntimeError(msg)
    return pool
