"""Persisted record types and the write-time account invariant check."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from account_service.auth.permissions import Role


NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 50

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class AuthOrigin(StrEnum):
    """How an account was first created.

    Not an exclusivity constraint: a local account linked to Google keeps
    ``LOCAL`` and may sign in both ways.
    """

    LOCAL = "local"
    GOOGLE = "google"


class Account(BaseModel):
    """Durable identity record."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    password_hash: str | None = None
    role: Role = Role.USER
    external_id: str | None = None
    profile_picture: str | None = None
    auth_origin: AuthOrigin = AuthOrigin.LOCAL
    created_at: datetime
    updated_at: datetime

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None


class RefreshTokenRecord(BaseModel):
    """Ledger entry authorizing one outstanding refresh token."""

    model_config = ConfigDict(frozen=True)

    token: str
    account_id: str
    expires_at: datetime
    created_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or datetime.now(UTC))


class ExternalIdentity(BaseModel):
    """Identity asserted by the external provider after verification."""

    model_config = ConfigDict(frozen=True)

    external_id: str
    email: str
    email_verified: bool
    display_name: str | None = None
    picture_url: str | None = None


class AccountInvariantError(ValueError):
    """Raised when an account would be persisted in an invalid state."""


def normalize_email(email: str) -> str:
    """Case-fold an address for storage and lookup."""
    return email.strip().lower()


def validate_account(account: Account) -> None:
    """Check the invariants every stored account must satisfy.

    Called by the stores before each insert or update.

    Raises:
        AccountInvariantError: Naming the first violated rule.
    """
    if account.auth_origin == AuthOrigin.LOCAL and not account.password_hash:
        msg = "Password is required for local accounts"
        raise AccountInvariantError(msg)

    if account.email != normalize_email(account.email):
        msg = "Email must be stored lower-cased and trimmed"
        raise AccountInvariantError(msg)

    if not _EMAIL_PATTERN.match(account.email):
        msg = "Please enter a valid email"
        raise AccountInvariantError(msg)

    if account.name != account.name.strip():
        msg = "Name must be trimmed"
        raise AccountInvariantError(msg)

    if not NAME_MIN_LENGTH <= len(account.name) <= NAME_MAX_LENGTH:
        msg = (
            f"Name must be between {NAME_MIN_LENGTH} and "
            f"{NAME_MAX_LENGTH} characters"
        )
        raise AccountInvariantError(msg)
