"""PostgreSQL schema for accounts and the refresh-token ledger.

Applied idempotently at startup. ``external_id`` uniqueness is a partial
index so that any number of accounts can have no external identity.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from account_service.auth.permissions import Role
from account_service.database.models import AuthOrigin
from account_service.observability.logging import get_logger


if TYPE_CHECKING:
    from asyncpg import Pool

logger = get_logger(__name__)

EMAIL_UNIQUE_INDEX = "accounts_email_key"
EXTERNAL_ID_UNIQUE_INDEX = "accounts_external_id_key"
REFRESH_TOKEN_PKEY = "refresh_tokens_pkey"


def _sql_values(values: list[str]) -> str:
    return ", ".join(f"'{v}'" for v in values)


SCHEMA_DDL = f"""
CREATE TABLE IF NOT EXISTS accounts (
    id              UUID PRIMARY KEY,
    name            VARCHAR(100) NOT NULL,
    email           VARCHAR(320) NOT NULL,
    password_hash   TEXT,
    role            VARCHAR(32) NOT NULL DEFAULT '{Role.USER}',
    external_id     VARCHAR(255),
    profile_picture TEXT,
    auth_origin     VARCHAR(16) NOT NULL DEFAULT '{AuthOrigin.LOCAL}',
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT accounts_email_lowercase CHECK (email = lower(email)),
    CONSTRAINT accounts_role_check CHECK (role IN ({_sql_values(list(Role))})),
    CONSTRAINT accounts_auth_origin_check
        CHECK (auth_origin IN ({_sql_values(list(AuthOrigin))})),
    CONSTRAINT accounts_local_password
        CHECK (auth_origin <> '{AuthOrigin.LOCAL}' OR password_hash IS NOT NULL)
);

CREATE UNIQUE INDEX IF NOT EXISTS {EMAIL_UNIQUE_INDEX} ON accounts (email);

CREATE UNIQUE INDEX IF NOT EXISTS {EXTERNAL_ID_UNIQUE_INDEX}
    ON accounts (external_id) WHERE external_id IS NOT NULL;

CREATE TABLE IF NOT EXISTS refresh_tokens (
    token       TEXT NOT NULL,
    account_id  UUID NOT NULL REFERENCES accounts (id) ON DELETE CASCADE,
    expires_at  TIMESTAMPTZ NOT NULL,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT {REFRESH_TOKEN_PKEY} PRIMARY KEY (token)
);

CREATE INDEX IF NOT EXISTS refresh_tokens_account_id_idx
    ON refresh_tokens (account_id);

CREATE INDEX IF NOT EXISTS refresh_tokens_expires_at_idx
    ON refresh_tokens (expires_at);
"""


async def apply_schema(pool: Pool) -> None:
    """Create tables and indexes that do not exist yet."""
    async with pool.acquire() as conn, conn.transaction():
        await conn.execute(SCHEMA_DDL)
    logger.info("Database schema applied")
