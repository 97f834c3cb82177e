"""Email + password authentication."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

from account_service.core.exceptions import InvalidCredentialsException
from account_service.database.models import normalize_email
from account_service.observability.logging import get_logger, mask_email


if TYPE_CHECKING:
    from account_service.auth.passwords import PasswordHasher
    from account_service.database.models import Account
    from account_service.database.repositories import AccountStore

logger = get_logger(__name__)


class CredentialAuthenticator:
    """Resolve an email/password pair to an account.

    Every failure raises the same ``InvalidCredentialsException`` so a
    caller cannot tell an unknown email from a wrong password. Unknown
    emails still pay for one hash verification to keep timing similar.
    """

    def __init__(self, accounts: AccountStore, hasher: PasswordHasher) -> None:
        self._accounts = accounts
        self._hasher = hasher
        self._dummy_digest: str | None = None

    async def authenticate(self, email: str, password: str) -> Account:
        email = normalize_email(email)
        account = await self._accounts.get_by_email(email)

        if account is None:
            await self._hasher.verify(password, await self._timing_digest())
            self._reject(email, "unknown_email")

        if account.password_hash is None:
            self._reject(email, "no_password")

        if not await self._hasher.verify(password, account.password_hash):
            self._reject(email, "password_mismatch")

        if self._hasher.needs_rehash(account.password_hash):
            await self._accounts.set_password(account.id, await self._hasher.hash(password))
            logger.info("Password digest upgraded", account_id=account.id)

        logger.info("Credential login succeeded", account_id=account.id)
        return account

    async def _timing_digest(self) -> str:
        if self._dummy_digest is None:
            self._dummy_digest = await self._hasher.hash("timing-equalizer")
        return self._dummy_digest

    @staticmethod
    def _reject(email: str, reason: str) -> NoReturn:
        logger.info("Credential login failed", email=mask_email(email), reason=reason)
        raise InvalidCredentialsException
