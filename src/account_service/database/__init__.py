"""Persistence layer: PostgreSQL pool, schema, models and repositories."""

from account_service.database.connection import (
    close_database_pool,
    get_database_pool,
    init_database_pool,
)
from account_service.database.exceptions import (
    DuplicateKeyError,
    StoreError,
    UnknownAccountError,
)
from account_service.database.models import (
    Account,
    AccountInvariantError,
    AuthOrigin,
    ExternalIdentity,
    RefreshTokenRecord,
)


__all__ = [
    "Account",
    "AccountInvariantError",
    "AuthOrigin",
    "DuplicateKeyError",
    "ExternalIdentity",
    "RefreshTokenRecord",
    "StoreError",
    "UnknownAccountError",
    "close_database_pool",
    "get_database_pool",
    "init_database_pool",
]
