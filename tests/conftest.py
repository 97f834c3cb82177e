"""Shared test fixtures and configuration for the Account service tests.

The environment is pinned to ``test`` before any application module is
imported, so cached settings load ``config/environments/test``.
"""

from __future__ import annotations

import os


os.environ["APP_ENV"] = "test"
os.environ.setdefault("JWT_ACCESS_SECRET", "test-access-secret-0123456789abcdef")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-0123456789abcdef")

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402

from account_service.auth.jwt import TokenCodec  # noqa: E402
from account_service.auth.passwords import PasswordHasher  # noqa: E402
from account_service.auth.permissions import Role  # noqa: E402
from account_service.database.models import Account, ExternalIdentity  # noqa: E402
from account_service.database.repositories import (  # noqa: E402
    InMemoryAccountStore,
    InMemoryRefreshTokenStore,
)
from account_service.services.accounts import (  # noqa: E402
    AccountService,
    new_local_account,
)
from account_service.services.auth import (  # noqa: E402
    CredentialAuthenticator,
    FederatedIdentityReconciler,
    SessionIssuer,
)


TEST_ACCESS_SECRET = "unit-access-secret-0123456789abcdef"  # noqa: S105
TEST_REFRESH_SECRET = "unit-refresh-secret-0123456789abcdef"  # noqa: S105
TEST_PASSWORD = "secret123"  # noqa: S105


# =============================================================================
# Crypto
# =============================================================================


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    """Argon2id hasher with minimal costs."""
    return PasswordHasher(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def codec() -> TokenCodec:
    """Token codec with the default lifetimes."""
    return TokenCodec(
        access_secret=TEST_ACCESS_SECRET,
        refresh_secret=TEST_REFRESH_SECRET,
        issuer="boilerplate",
        audience="boilerplate-users",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=7),
    )


# =============================================================================
# Stores and services
# =============================================================================


@pytest.fixture
def account_store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def refresh_store() -> InMemoryRefreshTokenStore:
    return InMemoryRefreshTokenStore()


@pytest.fixture
def account_service(
    account_store: InMemoryAccountStore,
    refresh_store: InMemoryRefreshTokenStore,
    hasher: PasswordHasher,
) -> AccountService:
    return AccountService(account_store, refresh_store, hasher)


@pytest.fixture
def credential_authenticator(
    account_store: InMemoryAccountStore,
    hasher: PasswordHasher,
) -> CredentialAuthenticator:
    return CredentialAuthenticator(account_store, hasher)


@pytest.fixture
def reconciler(account_store: InMemoryAccountStore) -> FederatedIdentityReconciler:
    return FederatedIdentityReconciler(account_store)


@pytest.fixture
def session_issuer(
    codec: TokenCodec,
    refresh_store: InMemoryRefreshTokenStore,
    account_store: InMemoryAccountStore,
) -> SessionIssuer:
    return SessionIssuer(codec, refresh_store, account_store)


# =============================================================================
# Accounts
# =============================================================================


@pytest.fixture
def account_password() -> str:
    """Password of the stored fixture accounts."""
    return TEST_PASSWORD


@pytest.fixture
async def local_account(
    account_store: InMemoryAccountStore,
    hasher: PasswordHasher,
) -> Account:
    """A stored local account with password ``TEST_PASSWORD``."""
    account = await new_local_account(
        name="Ada Lovelace",
        email="ada@example.com",
        password=TEST_PASSWORD,
        hasher=hasher,
    )
    return await account_store.create(account)


@pytest.fixture
async def admin_account(
    account_store: InMemoryAccountStore,
    hasher: PasswordHasher,
) -> Account:
    """A stored admin account with password ``TEST_PASSWORD``."""
    account = await new_local_account(
        name="Grace Hopper",
        email="grace@example.com",
        password=TEST_PASSWORD,
        hasher=hasher,
        role=Role.ADMIN,
    )
    return await account_store.create(account)


@pytest.fixture
def google_identity() -> ExternalIdentity:
    return ExternalIdentity(
        external_id="google-sub-123",
        email="Ada@Example.com",
        email_verified=True,
        display_name="Ada L.",
        picture_url="https://lh3.googleusercontent.com/a/ada.png",
    )
