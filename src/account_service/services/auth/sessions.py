"""Session issuance, refresh-token rotation and revocation.

A refresh token is only honoured while both its signature and its ledger
record are valid; logout removes the record, which is what actually ends a
session. Rotation always deletes the old record before recording the new
one so that a failure in between can never leave the old token usable.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from account_service.auth.jwt import TokenExpiredError, TokenInvalidError
from account_service.core.exceptions import (
    AuthenticationRequiredException,
    ConflictException,
    NotFoundException,
)
from account_service.database.exceptions import DuplicateKeyError, UnknownAccountError
from account_service.observability.logging import get_logger


if TYPE_CHECKING:
    from account_service.auth.jwt import TokenClaims, TokenCodec, TokenPair
    from account_service.database.models import Account
    from account_service.database.repositories import AccountStore, RefreshTokenStore

logger = get_logger(__name__)

REFRESH_TOKEN_EXPIRED = "Refresh token expired"
REFRESH_TOKEN_INVALID = "Invalid or expired refresh token"
REFRESH_TOKEN_NOT_FOUND = "Refresh token not found"


class SessionIssuer:
    """Turn an authenticated account into a persisted session."""

    def __init__(
        self,
        codec: TokenCodec,
        refresh_tokens: RefreshTokenStore,
        accounts: AccountStore,
    ) -> None:
        self._codec = codec
        self._refresh_tokens = refresh_tokens
        self._accounts = accounts

    async def _issue(self, account_id: str, email: str, role: str) -> TokenPair:
        pair = self._codec.issue_pair(account_id, email, role)
        expires_at = datetime.now(UTC) + self._codec.refresh_ttl
        try:
            await self._refresh_tokens.record(pair.refresh_token, account_id, expires_at)
        except DuplicateKeyError as e:
            logger.error("Refresh token collision", account_id=account_id)
            raise ConflictException("Refresh token collision, please retry") from e
        except UnknownAccountError as e:
            # Account deleted after it was looked up
            logger.info("Session not issued", reason="account_missing", account_id=account_id)
            raise NotFoundException("User not found") from e
        return pair

    async def issue_session_for(self, account: Account) -> TokenPair:
        """Issue a token pair and record the refresh token."""
        pair = await self._issue(account.id, account.email, account.role)
        logger.info("Session issued", account_id=account.id)
        return pair

    def _verify_refresh(self, refresh_token: str) -> TokenClaims:
        try:
            return self._codec.verify_refresh(refresh_token)
        except TokenExpiredError as e:
            logger.info("Refresh rejected", reason="signature_expired")
            raise AuthenticationRequiredException(REFRESH_TOKEN_EXPIRED) from e
        except TokenInvalidError as e:
            logger.info("Refresh rejected", reason="invalid_signature")
            raise AuthenticationRequiredException(REFRESH_TOKEN_INVALID) from e

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new token pair.

        The new pair carries the role embedded in the presented refresh
        token, not a freshly read one, so a role change reaches tokens only
        through a new sign-in.

        Raises:
            AuthenticationRequiredException: Bad or expired signature, or no
                live ledger record.
            NotFoundException: The account no longer exists.
        """
        claims = self._verify_refresh(refresh_token)

        record = await self._refresh_tokens.get(refresh_token)
        if record is None:
            logger.info(
                "Refresh rejected", reason="not_in_ledger", account_id=claims.subject_id
            )
            raise AuthenticationRequiredException(REFRESH_TOKEN_INVALID)
        if record.is_expired():
            await self._refresh_tokens.revoke(refresh_token)
            logger.info(
                "Refresh rejected", reason="ledger_expired", account_id=claims.subject_id
            )
            raise AuthenticationRequiredException(REFRESH_TOKEN_INVALID)

        account = await self._accounts.get_by_id(claims.subject_id)
        if account is None:
            await self._refresh_tokens.revoke(refresh_token)
            logger.info(
                "Refresh rejected", reason="account_missing", account_id=claims.subject_id
            )
            raise NotFoundException("User not found")

        if await self._refresh_tokens.revoke(refresh_token) == 0:
            # Lost a race with a concurrent refresh or logout
            logger.warning(
                "Refresh rejected", reason="already_rotated", account_id=account.id
            )
            raise AuthenticationRequiredException(REFRESH_TOKEN_INVALID)
        pair = await self._issue(account.id, claims.email, claims.role)
        logger.info("Session refreshed", account_id=account.id)
        return pair

    async def revoke(self, refresh_token: str) -> None:
        """Delete the ledger record of ``refresh_token``.

        The signature is checked for logging only, so an expired token can
        still be logged out.

        Raises:
            NotFoundException: If no record was deleted.
        """
        account_id: str | None = None
        try:
            account_id = self._codec.verify_refresh(refresh_token).subject_id
        except (TokenExpiredError, TokenInvalidError) as e:
            logger.warning("Logout with unverifiable refresh token", error=str(e))

        if await self._refresh_tokens.revoke(refresh_token) == 0:
            raise NotFoundException(REFRESH_TOKEN_NOT_FOUND)
        logger.info("Session revoked", account_id=account_id)
