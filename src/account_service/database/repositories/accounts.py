"""PostgreSQL repository for accounts."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

import asyncpg

from account_service.auth.permissions import Role
from account_service.database.connection import get_database_pool
from account_service.database.exceptions import DuplicateKeyError, StoreError
from account_service.database.models import (
    Account,
    AuthOrigin,
    normalize_email,
    validate_account,
)
from account_service.database.schema import EMAIL_UNIQUE_INDEX, EXTERNAL_ID_UNIQUE_INDEX
from account_service.observability.logging import get_logger


if TYPE_CHECKING:
    from asyncpg import Pool, Record


logger = get_logger(__name__)

_COLUMNS = (
    "id, name, email, password_hash, role, external_id, "
    "profile_picture, auth_origin, created_at, updated_at"
)

_UNIQUE_FIELDS = {
    EMAIL_UNIQUE_INDEX: "email",
    EXTERNAL_ID_UNIQUE_INDEX: "external_id",
    "accounts_pkey": "id",
}


def _as_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def _duplicate_key(exc: asyncpg.UniqueViolationError) -> DuplicateKeyError:
    return DuplicateKeyError(_UNIQUE_FIELDS.get(exc.constraint_name or "", "unknown"))


class AccountRepository:
    """``AccountStore`` over an asyncpg pool.

    Ids are UUIDs in the database and strings everywhere else; an id that
    is not a UUID simply matches nothing.
    """

    def __init__(self, pool: Pool | None = None) -> None:
        self._pool = pool

    @property
    def pool(self) -> Pool:
        """Get the connection pool, using global pool if not provided."""
        if self._pool is None:
            return get_database_pool()
        return self._pool

    async def _fetch_one(self, query: str, *args: Any) -> Account | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, *args)
        return self._row_to_account(row) if row else None

    async def _write(self, query: str, *args: Any) -> Account | None:
        try:
            return await self._fetch_one(query, *args)
        except asyncpg.UniqueViolationError as e:
            raise _duplicate_key(e) from e

    async def create(self, account: Account) -> Account:
        validate_account(account)
        query = f"""
            INSERT INTO accounts ({_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
            RETURNING {_COLUMNS}
        """
        created = await self._write(
            query,
            uuid.UUID(account.id),
            account.name,
            account.email,
            account.password_hash,
            str(account.role),
            account.external_id,
            account.profile_picture,
            str(account.auth_origin),
            account.created_at,
            account.updated_at,
        )
        if created is None:
            msg = "INSERT INTO accounts returned no row"
            raise StoreError(msg)
        logger.debug("Account created", account_id=created.id)
        return created

    async def get_by_id(self, account_id: str) -> Account | None:
        key = _as_uuid(account_id)
        if key is None:
            return None
        return await self._fetch_one(
            f"SELECT {_COLUMNS} FROM accounts WHERE id = $1", key
        )

    async def get_by_email(self, email: str) -> Account | None:
        return await self._fetch_one(
            f"SELECT {_COLUMNS} FROM accounts WHERE email = $1",
            normalize_email(email),
        )

    async def get_by_external_id(self, external_id: str) -> Account | None:
        return await self._fetch_one(
            f"SELECT {_COLUMNS} FROM accounts WHERE external_id = $1",
            external_id,
        )

    async def list_accounts(self) -> list[Account]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_COLUMNS} FROM accounts ORDER BY created_at"
            )
        return [self._row_to_account(row) for row in rows]

    async def _update(self, account_id: str, **changes: Any) -> Account | None:
        """Apply ``changes`` after checking the resulting account is valid."""
        current = await self.get_by_id(account_id)
        if current is None:
            return None
        validate_account(current.model_copy(update=changes))

        assignments = ", ".join(
            f"{column} = ${index}" for index, column in enumerate(changes, start=2)
        )
        query = f"""
            UPDATE accounts
            SET {assignments}, updated_at = now()
            WHERE id = $1
            RETURNING {_COLUMNS}
        """
        return await self._write(query, uuid.UUID(current.id), *changes.values())

    async def update_profile(
        self,
        account_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
    ) -> Account | None:
        changes: dict[str, Any] = {}
        if name is not None:
            changes["name"] = name
        if email is not None:
            changes["email"] = normalize_email(email)
        if not changes:
            return await self.get_by_id(account_id)
        return await self._update(account_id, **changes)

    async def link_external_identity(
        self,
        account_id: str,
        external_id: str,
        picture_url: str | None = None,
    ) -> Account | None:
        changes: dict[str, Any] = {"external_id": external_id}
        if picture_url:
            changes["profile_picture"] = picture_url
        return await self._update(account_id, **changes)

    async def set_password(self, account_id: str, password_hash: str) -> Account | None:
        return await self._update(account_id, password_hash=password_hash)

    async def delete(self, account_id: str) -> bool:
        key = _as_uuid(account_id)
        if key is None:
            return False
        async with self.pool.acquire() as conn:
            result = await conn.execute("DELETE FROM accounts WHERE id = $1", key)
        return result.endswith(" 1")

    async def ping(self) -> None:
        async with self.pool.acquire() as conn:
            await conn.fetchval("SELECT 1")

    @staticmethod
    def _row_to_account(row: Record) -> Account:
        return Account(
            id=str(row["id"]),
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            role=Role(row["role"]),
            external_id=row["external_id"],
            profile_picture=row["profile_picture"],
            auth_origin=AuthOrigin(row["auth_origin"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
