"""In-memory account store and refresh-token ledger.

Same contract as the PostgreSQL repositories, for local runs and tests.
Uniqueness of email and external id is enforced with secondary indexes
checked before every write. No ``await`` happens between a check and
the write it guards, so each operation is atomic on the event loop.
"""

from __future__ import annotations

from datetime import UTC, datetime

from account_service.database.exceptions import DuplicateKeyError
from account_service.database.models import (
    Account,
    RefreshTokenRecord,
    normalize_email,
    validate_account,
)
from account_service.observability.logging import get_logger


logger = get_logger(__name__)


class InMemoryAccountStore:
    """Dictionary-backed ``AccountStore``."""

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._by_email: dict[str, str] = {}
        self._by_external_id: dict[str, str] = {}

    def _check_unique(self, account: Account) -> None:
        owner = self._by_email.get(account.email)
        if owner is not None and owner != account.id:
            raise DuplicateKeyError("email")
        if account.external_id is not None:
            owner = self._by_external_id.get(account.external_id)
            if owner is not None and owner != account.id:
                raise DuplicateKeyError("external_id")

    def _save(self, account: Account) -> Account:
        validate_account(account)
        self._check_unique(account)

        previous = self._accounts.get(account.id)
        if previous is not None:
            self._by_email.pop(previous.email, None)
            if previous.external_id is not None:
                self._by_external_id.pop(previous.external_id, None)

        self._accounts[account.id] = account
        self._by_email[account.email] = account.id
        if account.external_id is not None:
            self._by_external_id[account.external_id] = account.id
        return account

    def _touch(self, account_id: str, **changes: object) -> Account | None:
        current = self._accounts.get(account_id)
        if current is None:
            return None
        updated = current.model_copy(
            update={**changes, "updated_at": datetime.now(UTC)}
        )
        return self._save(updated)

    async def create(self, account: Account) -> Account:
        if account.id in self._accounts:
            raise DuplicateKeyError("id")
        return self._save(account)

    async def get_by_id(self, account_id: str) -> Account | None:
        return self._accounts.get(account_id)

    async def get_by_email(self, email: str) -> Account | None:
        account_id = self._by_email.get(normalize_email(email))
        return self._accounts.get(account_id) if account_id else None

    async def get_by_external_id(self, external_id: str) -> Account | None:
        account_id = self._by_external_id.get(external_id)
        return self._accounts.get(account_id) if account_id else None

    async def list_accounts(self) -> list[Account]:
        return sorted(self._accounts.values(), key=lambda a: a.created_at)

    async def update_profile(
        self,
        account_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
    ) -> Account | None:
        changes: dict[str, object] = {}
        if name is not None:
            changes["name"] = name
        if email is not None:
            changes["email"] = normalize_email(email)
        return self._touch(account_id, **changes)

    async def link_external_identity(
        self,
        account_id: str,
        external_id: str,
        picture_url: str | None = None,
    ) -> Account | None:
        changes: dict[str, object] = {"external_id": external_id}
        if picture_url:
            changes["profile_picture"] = picture_url
        return self._touch(account_id, **changes)

    async def set_password(self, account_id: str, password_hash: str) -> Account | None:
        return self._touch(account_id, password_hash=password_hash)

    async def delete(self, account_id: str) -> bool:
        account = self._accounts.pop(account_id, None)
        if account is None:
            return False
        self._by_email.pop(account.email, None)
        if account.external_id is not None:
            self._by_external_id.pop(account.external_id, None)
        return True

    async def ping(self) -> None:
        return None


class InMemoryRefreshTokenStore:
    """Dictionary-backed ``RefreshTokenStore``."""

    def __init__(self) -> None:
        self._records: dict[str, RefreshTokenRecord] = {}

    def _live(self, token: str) -> RefreshTokenRecord | None:
        record = self._records.get(token)
        if record is None:
            return None
        if record.is_expired():
            # Lazy purge
            del self._records[token]
            return None
        return record

    async def record(
        self,
        token: str,
        account_id: str,
        expires_at: datetime,
    ) -> RefreshTokenRecord:
        if token in self._records:
            raise DuplicateKeyError("token")
        entry = RefreshTokenRecord(
            token=token,
            account_id=account_id,
            expires_at=expires_at,
            created_at=datetime.now(UTC),
        )
        self._records[token] = entry
        return entry

    async def get(self, token: str) -> RefreshTokenRecord | None:
        return self._records.get(token)

    async def exists(self, token: str) -> bool:
        return self._live(token) is not None

    async def find_owner(self, token: str) -> str | None:
        record = self._live(token)
        return record.account_id if record else None

    async def revoke(self, token: str) -> int:
        return 1 if self._records.pop(token, None) is not None else 0

    async def revoke_all_for_account(self, account_id: str) -> int:
        tokens = [t for t, r in self._records.items() if r.account_id == account_id]
        for token in tokens:
            del self._records[token]
        return len(tokens)

    async def purge_expired(self, now: datetime | None = None) -> int:
        now = now or datetime.now(UTC)
        expired = [t for t, r in self._records.items() if r.is_expired(now)]
        for token in expired:
            del self._records[token]
        if expired:
            logger.debug("Purged expired refresh tokens", count=len(expired))
        return len(expired)
