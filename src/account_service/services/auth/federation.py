"""Federated sign-in: resolve a verified external identity to one account.

Resolution order is fixed:

1. reject identities whose email the provider has not verified
2. an account already carrying the external id is returned untouched
3. an account with the same email is linked (external id and picture set,
   everything else preserved)
4. otherwise a new password-less account is created

Checking the external id first makes repeated sign-ins read-only.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from account_service.auth.providers import (
    IdentityProviderNotConfiguredError,
    IdentityVerificationError,
)
from account_service.core.exceptions import (
    ConflictException,
    InvalidCredentialsException,
    ServiceUnavailableException,
    UnverifiedEmailException,
    ValidationFailedException,
)
from account_service.database.exceptions import DuplicateKeyError
from account_service.database.models import AccountInvariantError
from account_service.observability.logging import get_logger
from account_service.observability.tracing import add_span_attributes
from account_service.services.accounts.factory import new_federated_account


if TYPE_CHECKING:
    from account_service.auth.providers import IdentityProvider
    from account_service.database.models import Account, ExternalIdentity
    from account_service.database.repositories import AccountStore

logger = get_logger(__name__)

INVALID_ID_TOKEN = "Invalid Google ID token"


class FederatedIdentityReconciler:
    """Map an ``ExternalIdentity`` to exactly one local account."""

    def __init__(self, accounts: AccountStore) -> None:
        self._accounts = accounts

    async def reconcile(self, identity: ExternalIdentity) -> Account:
        """Find, link or create the account for ``identity``.

        Raises:
            UnverifiedEmailException: If the email is not verified.
            ConflictException: If a concurrent request claimed the email or
                external id first.
        """
        if not identity.email_verified:
            logger.info(
                "Federated sign-in rejected: email not verified",
                external_id=identity.external_id,
            )
            raise UnverifiedEmailException

        account = await self._accounts.get_by_external_id(identity.external_id)
        if account is not None:
            self._record_branch("external_id", account)
            return account

        account = await self._accounts.get_by_email(identity.email)
        if account is not None:
            return await self._link(account, identity)

        return await self._create(identity)

    async def _link(self, account: Account, identity: ExternalIdentity) -> Account:
        if account.external_id and account.external_id != identity.external_id:
            logger.warning(
                "Replacing external identity on account",
                account_id=account.id,
            )
        try:
            linked = await self._accounts.link_external_identity(
                account.id,
                identity.external_id,
                identity.picture_url,
            )
        except DuplicateKeyError as e:
            msg = "Google account is already linked to another user"
            raise ConflictException(msg) from e

        if linked is None:
            # Deleted between lookup and update; treat as a new sign-up
            return await self._create(identity)
        self._record_branch("linked", linked)
        return linked

    async def _create(self, identity: ExternalIdentity) -> Account:
        try:
            created = await self._accounts.create(new_federated_account(identity))
        except DuplicateKeyError as e:
            if e.field == "email":
                raise ConflictException("Email already exists") from e
            msg = "Google account is already linked to another user"
            raise ConflictException(msg) from e
        except AccountInvariantError as e:
            raise ValidationFailedException(str(e)) from e

        self._record_branch("created", created)
        return created

    @staticmethod
    def _record_branch(branch: str, account: Account) -> None:
        logger.info("Federated identity reconciled", branch=branch, account_id=account.id)
        add_span_attributes(**{"auth.federation.branch": branch})


class FederatedAuthenticator:
    """Verify a provider assertion, then reconcile it to an account."""

    def __init__(
        self,
        provider: IdentityProvider | None,
        reconciler: FederatedIdentityReconciler,
    ) -> None:
        self._provider = provider
        self._reconciler = reconciler

    @property
    def provider(self) -> IdentityProvider:
        if self._provider is None:
            raise ServiceUnavailableException("Google sign-in is not configured")
        return self._provider

    def authorization_url(self, state: str) -> str:
        try:
            return self.provider.authorization_url(state)
        except IdentityProviderNotConfiguredError as e:
            raise ServiceUnavailableException(str(e)) from e

    async def authenticate_id_token(self, id_token: str) -> Account:
        try:
            identity = await self.provider.verify_id_token(id_token)
        except IdentityVerificationError as e:
            logger.info("Google ID token rejected", reason=str(e))
            raise InvalidCredentialsException(INVALID_ID_TOKEN) from e
        return await self._reconciler.reconcile(identity)

    async def authenticate_code(self, code: str) -> Account:
        try:
            identity = await self.provider.exchange_code(code)
        except IdentityProviderNotConfiguredError as e:
            raise ServiceUnavailableException(str(e)) from e
        except IdentityVerificationError as e:
            logger.info("Google authorization code rejected", reason=str(e))
            raise InvalidCredentialsException(INVALID_ID_TOKEN) from e
        return await self._reconciler.reconcile(identity)
