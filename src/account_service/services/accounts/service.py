"""Account management: registration, profile updates, password changes
and deletion."""

from __future__ import annotations

from typing import TYPE_CHECKING

from account_service.core.exceptions import (
    ConflictException,
    InvalidCredentialsException,
    NotFoundException,
    ValidationFailedException,
)
from account_service.database.exceptions import DuplicateKeyError
from account_service.database.models import AccountInvariantError, normalize_email
from account_service.observability.logging import get_logger
from account_service.services.accounts.factory import new_local_account


if TYPE_CHECKING:
    from account_service.auth.passwords import PasswordHasher
    from account_service.database.models import Account
    from account_service.database.repositories import AccountStore, RefreshTokenStore

logger = get_logger(__name__)

ACCOUNT_NOT_FOUND = "User not found"


class AccountService:
    """Operations on accounts that are not part of signing in."""

    def __init__(
        self,
        accounts: AccountStore,
        refresh_tokens: RefreshTokenStore,
        hasher: PasswordHasher,
    ) -> None:
        self._accounts = accounts
        self._refresh_tokens = refresh_tokens
        self._hasher = hasher

    async def register(self, name: str, email: str, password: str) -> Account:
        """Create a local account.

        Raises:
            ConflictException: If the email is already registered.
            ValidationFailedException: If the account would be invalid.
        """
        if await self._accounts.get_by_email(email) is not None:
            raise ConflictException("Email already exists")

        account = await new_local_account(
            name=name, email=email, password=password, hasher=self._hasher
        )
        try:
            created = await self._accounts.create(account)
        except DuplicateKeyError as e:
            # Lost a race with a concurrent registration
            raise ConflictException("Email already exists") from e
        except AccountInvariantError as e:
            raise ValidationFailedException(str(e)) from e

        logger.info("Account registered", account_id=created.id)
        return created

    async def get(self, account_id: str) -> Account:
        account = await self._accounts.get_by_id(account_id)
        if account is None:
            raise NotFoundException(ACCOUNT_NOT_FOUND)
        return account

    async def list_accounts(self) -> list[Account]:
        return await self._accounts.list_accounts()

    async def update(
        self,
        account_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
    ) -> Account:
        """Update name and/or email.

        Raises:
            ValidationFailedException: If neither field is given.
            NotFoundException: If the account does not exist.
            ConflictException: If the new email belongs to another account.
        """
        if name is None and email is None:
            msg = "At least one field (name or email) must be provided"
            raise ValidationFailedException(msg)

        current = await self.get(account_id)
        if email is not None:
            email = normalize_email(email)
            owner = await self._accounts.get_by_email(email)
            if owner is not None and owner.id != current.id:
                raise ConflictException("Email already taken")

        try:
            updated = await self._accounts.update_profile(
                account_id,
                name=name.strip() if name is not None else None,
                email=email,
            )
        except DuplicateKeyError as e:
            raise ConflictException("Email already taken") from e
        except AccountInvariantError as e:
            raise ValidationFailedException(str(e)) from e

        if updated is None:
            raise NotFoundException(ACCOUNT_NOT_FOUND)
        logger.info("Account updated", account_id=account_id)
        return updated

    async def change_password(
        self,
        account_id: str,
        old_password: str,
        new_password: str,
    ) -> None:
        """Replace the password after checking the current one.

        Accounts created through Google have no password and are answered
        like a wrong old password.
        """
        account = await self.get(account_id)
        if account.password_hash is None or not await self._hasher.verify(
            old_password, account.password_hash
        ):
            logger.info("Password change rejected", account_id=account_id)
            raise InvalidCredentialsException("Incorrect old password")

        await self._accounts.set_password(
            account_id, await self._hasher.hash(new_password)
        )
        logger.info("Password changed", account_id=account_id)

    async def delete(self, account_id: str) -> None:
        """Delete an account together with all its refresh tokens."""
        await self.get(account_id)
        revoked = await self._refresh_tokens.revoke_all_for_account(account_id)
        if not await self._accounts.delete(account_id):
            raise NotFoundException(ACCOUNT_NOT_FOUND)
        logger.info("Account deleted", account_id=account_id, revoked_sessions=revoked)
