"""Repositories for accounts and refresh tokens."""

from account_service.database.repositories.accounts import AccountRepository
from account_service.database.repositories.memory import (
    InMemoryAccountStore,
    InMemoryRefreshTokenStore,
)
from account_service.database.repositories.protocol import (
    AccountStore,
    RefreshTokenStore,
)
from account_service.database.repositories.refresh_tokens import (
    RefreshTokenRepository,
)


__all__ = [
    "AccountRepository",
    "AccountStore",
    "InMemoryAccountStore",
    "InMemoryRefreshTokenStore",
    "RefreshTokenRepository",
    "RefreshTokenStore",
]
