"""Session token codec.

Access and refresh tokens are compact HS256 JWTs carrying the account id,
email and role next to the registered ``iat``/``exp``/``iss``/``aud``
claims. The two token classes are signed with separate secrets so that a
leaked refresh secret cannot mint access tokens and vice versa.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from account_service.observability.logging import get_logger


if TYPE_CHECKING:
    from account_service.core.config import Settings

logger = get_logger(__name__)

_DEV_ACCESS_SECRET = "dev-access-secret-do-not-use-in-production"  # noqa: S105
_DEV_REFRESH_SECRET = "dev-refresh-secret-do-not-use-in-production"  # noqa: S105


class TokenType(StrEnum):
    """Token classes signed by the codec."""

    ACCESS = "access"
    REFRESH = "refresh"
    OAUTH_STATE = "oauth_state"


class TokenError(Exception):
    """Base exception for token-related errors."""


class TokenExpiredError(TokenError):
    """Raised when a token is past its ``exp`` claim."""


class TokenInvalidError(TokenError):
    """Raised when a token is malformed or fails signature/claim checks."""


class TokenConfigurationError(TokenError):
    """Raised when signing secrets are missing or unsafe."""


class TokenClaims(BaseModel):
    """Verified claims of a session token."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    subject_id: str = Field(alias="userId")
    email: str
    role: str
    issued_at: datetime = Field(alias="iat")
    expires_at: datetime = Field(alias="exp")
    issuer: str = Field(alias="iss")
    audience: str = Field(alias="aud")
    token_id: str = Field(alias="jti")
    type: TokenType


class TokenPair(BaseModel):
    """Access + refresh token returned to the client."""

    access_token: str
    refresh_token: str


class TokenCodec:
    """Issue and verify access/refresh tokens.

    Verification never touches storage; revocation of refresh tokens is the
    ledger's job.
    """

    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        issuer: str,
        audience: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        algorithm: str = "HS256",
    ) -> None:
        if not access_secret or not refresh_secret:
            msg = "Both access and refresh secrets are required"
            raise TokenConfigurationError(msg)
        if access_secret == refresh_secret:
            msg = "Access and refresh tokens must be signed with different secrets"
            raise TokenConfigurationError(msg)

        self._secrets = {
            TokenType.ACCESS: access_secret,
            TokenType.REFRESH: refresh_secret,
            TokenType.OAUTH_STATE: access_secret,
        }
        self._ttls = {
            TokenType.ACCESS: access_ttl,
            TokenType.REFRESH: refresh_ttl,
        }
        self.issuer = issuer
        self.audience = audience
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenCodec:
        """Build a codec from configuration.

        Outside production, missing secrets fall back to fixed development
        values with a warning. In production they are a startup error.
        """
        access_secret = settings.JWT_ACCESS_SECRET
        refresh_secret = settings.JWT_REFRESH_SECRET

        if not access_secret or not refresh_secret:
            if settings.is_production:
                msg = "JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must be set in production"
                raise TokenConfigurationError(msg)
            logger.warning(
                "Using insecure development JWT secrets - do not use in production"
            )
            access_secret = access_secret or _DEV_ACCESS_SECRET
            refresh_secret = refresh_secret or _DEV_REFRESH_SECRET

        jwt_settings = settings.auth.jwt
        return cls(
            access_secret=access_secret,
            refresh_secret=refresh_secret,
            issuer=jwt_settings.issuer,
            audience=jwt_settings.audience,
            access_ttl=timedelta(minutes=jwt_settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=jwt_settings.refresh_token_expire_days),
            algorithm=jwt_settings.algorithm,
        )

    @property
    def access_ttl(self) -> timedelta:
        return self._ttls[TokenType.ACCESS]

    @property
    def refresh_ttl(self) -> timedelta:
        return self._ttls[TokenType.REFRESH]

    # =========================================================================
    # Issuance
    # =========================================================================

    def _issue(
        self,
        token_type: TokenType,
        account_id: str,
        email: str,
        role: str,
        *,
        ttl: timedelta | None = None,
    ) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "userId": account_id,
            "email": email,
            "role": str(role),
            "iat": now,
            "exp": now + (self._ttls[token_type] if ttl is None else ttl),
            "iss": self.issuer,
            "aud": self.audience,
            # Two tokens minted in the same second must still differ
            "jti": uuid.uuid4().hex,
            "type": token_type.value,
        }
        return jwt.encode(payload, self._secrets[token_type], algorithm=self.algorithm)

    def issue_access(
        self,
        account_id: str,
        email: str,
        role: str,
        *,
        ttl: timedelta | None = None,
    ) -> str:
        """Create a short-lived access token."""
        return self._issue(TokenType.ACCESS, account_id, email, role, ttl=ttl)

    def issue_refresh(
        self,
        account_id: str,
        email: str,
        role: str,
        *,
        ttl: timedelta | None = None,
    ) -> str:
        """Create a long-lived refresh token (signed with the refresh secret)."""
        return self._issue(TokenType.REFRESH, account_id, email, role, ttl=ttl)

    def issue_pair(self, account_id: str, email: str, role: str) -> TokenPair:
        """Create an access + refresh token pair for one account."""
        return TokenPair(
            access_token=self.issue_access(account_id, email, role),
            refresh_token=self.issue_refresh(account_id, email, role),
        )

    # =========================================================================
    # Verification
    # =========================================================================

    def _decode(self, token: str, token_type: TokenType) -> dict[str, Any]:
        """Check signature, registered claims and token class."""
        try:
            payload = jwt.decode(
                token,
                self._secrets[token_type],
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"require_exp": True, "require_iat": True},
            )
        except ExpiredSignatureError as e:
            logger.debug("Token expired", token_type=token_type.value)
            msg = "Token has expired"
            raise TokenExpiredError(msg) from e
        except JWTClaimsError as e:
            logger.warning("Token claims rejected", token_type=token_type.value, error=str(e))
            msg = "Invalid token claims"
            raise TokenInvalidError(msg) from e
        except JWTError as e:
            logger.warning("Invalid token", token_type=token_type.value, error=str(e))
            msg = "Invalid token"
            raise TokenInvalidError(msg) from e

        # exp is exclusive; jose only rejects exp < now
        if payload["exp"] <= int(datetime.now(UTC).timestamp()):
            logger.debug("Token expired", token_type=token_type.value)
            msg = "Token has expired"
            raise TokenExpiredError(msg)

        if payload.get("type") != token_type.value:
            msg = f"Invalid token type. Expected {token_type.value}"
            raise TokenInvalidError(msg)
        return payload

    def _verify(self, token: str, token_type: TokenType) -> TokenClaims:
        payload = self._decode(token, token_type)
        try:
            return TokenClaims.model_validate(payload)
        except ValidationError as e:
            msg = "Token is missing required claims"
            raise TokenInvalidError(msg) from e

    def verify_access(self, token: str) -> TokenClaims:
        """Verify an access token.

        Raises:
            TokenExpiredError: If the token is past its expiry.
            TokenInvalidError: On bad signature, issuer, audience or shape.
        """
        return self._verify(token, TokenType.ACCESS)

    def verify_refresh(self, token: str) -> TokenClaims:
        """Verify a refresh token (same failure modes as ``verify_access``)."""
        return self._verify(token, TokenType.REFRESH)

    # =========================================================================
    # OAuth state
    # =========================================================================

    def issue_state(self, ttl: timedelta) -> str:
        """Create a signed, short-lived ``state`` value for the redirect flow."""
        now = datetime.now(UTC)
        payload = {
            "iat": now,
            "exp": now + ttl,
            "iss": self.issuer,
            "aud": self.audience,
            "jti": uuid.uuid4().hex,
            "type": TokenType.OAUTH_STATE.value,
        }
        return jwt.encode(
            payload, self._secrets[TokenType.OAUTH_STATE], algorithm=self.algorithm
        )

    def verify_state(self, state: str) -> None:
        """Check a ``state`` value issued by ``issue_state``.

        Raises:
            TokenExpiredError: If the sign-in attempt took too long.
            TokenInvalidError: If the value was not issued by this service.
        """
        self._decode(state, TokenType.OAUTH_STATE)
