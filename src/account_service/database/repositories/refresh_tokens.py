"""PostgreSQL repository for the refresh-token ledger."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import asyncpg

from account_service.database.connection import get_database_pool
from account_service.database.exceptions import DuplicateKeyError, UnknownAccountError
from account_service.database.models import RefreshTokenRecord
from account_service.observability.logging import get_logger


if TYPE_CHECKING:
    from asyncpg import Pool, Record


logger = get_logger(__name__)


def _deleted_count(status: str) -> int:
    """Parse the row count out of an asyncpg ``DELETE n`` status string."""
    return int(status.rsplit(" ", 1)[-1])


class RefreshTokenRepository:
    """``RefreshTokenStore`` over an asyncpg pool."""

    def __init__(self, pool: Pool | None = None) -> None:
        self._pool = pool

    @property
    def pool(self) -> Pool:
        """Get the connection pool, using global pool if not provided."""
        if self._pool is None:
            return get_database_pool()
        return self._pool

    async def record(
        self,
        token: str,
        account_id: str,
        expires_at: datetime,
    ) -> RefreshTokenRecord:
        query = """
            INSERT INTO refresh_tokens (token, account_id, expires_at)
            VALUES ($1, $2, $3)
            RETURNING token, account_id, expires_at, created_at
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(query, token, uuid.UUID(account_id), expires_at)
        except asyncpg.UniqueViolationError as e:
            raise DuplicateKeyError("token") from e
        except asyncpg.ForeignKeyViolationError as e:
            raise UnknownAccountError(account_id) from e
        return self._row_to_record(row)

    async def get(self, token: str) -> RefreshTokenRecord | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT token, account_id, expires_at, created_at "
                "FROM refresh_tokens WHERE token = $1",
                token,
            )
        return self._row_to_record(row) if row else None

    async def _live(self, token: str) -> RefreshTokenRecord | None:
        record = await self.get(token)
        if record is not None and record.is_expired():
            # Lazy purge
            await self.revoke(token)
            return None
        return record

    async def exists(self, token: str) -> bool:
        return await self._live(token) is not None

    async def find_owner(self, token: str) -> str | None:
        record = await self._live(token)
        return record.account_id if record else None

    async def revoke(self, token: str) -> int:
        async with self.pool.acquire() as conn:
            status = await conn.execute(
                "DELETE FROM refresh_tokens WHERE token = $1", token
            )
        return _deleted_count(status)

    async def revoke_all_for_account(self, account_id: str) -> int:
        async with self.pool.acquire() as conn:
            status = await conn.execute(
                "DELETE FROM refresh_tokens WHERE account_id = $1",
                uuid.UUID(account_id),
            )
        return _deleted_count(status)

    async def purge_expired(self, now: datetime | None = None) -> int:
        async with self.pool.acquire() as conn:
            status = await conn.execute(
                "DELETE FROM refresh_tokens WHERE expires_at <= $1",
                now or datetime.now(UTC),
            )
        count = _deleted_count(status)
        logger.debug("Purged expired refresh tokens", count=count)
        return count

    @staticmethod
    def _row_to_record(row: Record) -> RefreshTokenRecord:
        return RefreshTokenRecord(
            token=row["token"],
            account_id=str(row["account_id"]),
            expires_at=row["expires_at"],
            created_at=row["created_at"],
        )
