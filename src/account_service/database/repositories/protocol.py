"""Storage protocols implemented by the PostgreSQL and in-memory backends."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from account_service.database.models import Account, RefreshTokenRecord


@runtime_checkable
class AccountStore(Protocol):
    """Account persistence.

    Emails are compared lower-cased. ``external_id`` is unique among
    accounts that have one. Writes run ``validate_account`` first and raise
    ``DuplicateKeyError`` on a uniqueness violation.
    """

    async def create(self, account: Account) -> Account: ...

    async def get_by_id(self, account_id: str) -> Account | None: ...

    async def get_by_email(self, email: str) -> Account | None: ...

    async def get_by_external_id(self, external_id: str) -> Account | None: ...

    async def list_accounts(self) -> list[Account]: ...

    async def update_profile(
        self,
        account_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
    ) -> Account | None: ...

    async def link_external_identity(
        self,
        account_id: str,
        external_id: str,
        picture_url: str | None = None,
    ) -> Account | None: ...

    async def set_password(self, account_id: str, password_hash: str) -> Account | None: ...

    async def delete(self, account_id: str) -> bool: ...

    async def ping(self) -> None: ...


@runtime_checkable
class RefreshTokenStore(Protocol):
    """Refresh-token ledger.

    ``exists`` and ``find_owner`` treat expired records as absent (and drop
    them). ``get`` returns the raw record, expired or not, so the caller can
    tell the two failure kinds apart. ``record`` raises ``DuplicateKeyError``
    for a reused token and, where the account reference is enforced,
    ``UnknownAccountError`` for a deleted account.
    """

    async def record(
        self,
        token: str,
        account_id: str,
        expires_at: datetime,
    ) -> RefreshTokenRecord: ...

    async def get(self, token: str) -> RefreshTokenRecord | None: ...

    async def exists(self, token: str) -> bool: ...

    async def find_owner(self, token: str) -> str | None: ...

    async def revoke(self, token: str) -> int: ...

    async def revoke_all_for_account(self, account_id: str) -> int: ...

    async def purge_expired(self, now: datetime | None = None) -> int: ...
