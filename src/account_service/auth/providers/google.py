"""Google OAuth 2.0 / OpenID Connect identity provider.

ID tokens are verified locally against Google's published JWKS, which is
cached and refetched once when a token names an unknown ``kid`` (key
rotation). Every outbound call goes through one ``httpx.AsyncClient`` with
a bounded timeout.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import httpx
from jose import jwt
from jose.exceptions import JWTError

from account_service.auth.providers.exceptions import (
    IdentityProviderNotConfiguredError,
    IdentityProviderUnavailableError,
    IdentityVerificationError,
)
from account_service.database.models import ExternalIdentity
from account_service.observability.logging import get_logger


if TYPE_CHECKING:
    from account_service.core.config import Settings

logger = get_logger(__name__)

_ALLOWED_ALGORITHMS = ["RS256"]


def _as_bool(value: Any) -> bool:
    # Google has historically sent email_verified as "true"/"false" strings
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)


def _json_object(response: httpx.Response, what: str) -> dict[str, Any]:
    """Decode a JSON object body or treat the endpoint as unavailable."""
    try:
        body = response.json()
    except ValueError as e:
        logger.warning(
            "Google returned a non-JSON body",
            what=what,
            content_type=response.headers.get("content-type"),
        )
        msg = f"Google {what} is not valid JSON"
        raise IdentityProviderUnavailableError(msg) from e
    if not isinstance(body, dict):
        msg = f"Google {what} is not a JSON object"
        raise IdentityProviderUnavailableError(msg)
    return body


class GoogleIdentityProvider:
    """Google sign-in for the redirect (web) and ID-token (mobile) flows."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        accepted_client_ids: list[str] | None = None,
        authorization_endpoint: str = "https://accounts.google.com/o/oauth2/v2/auth",
        token_endpoint: str = "https://oauth2.googleapis.com/token",
        jwks_url: str = "https://www.googleapis.com/oauth2/v3/certs",
        issuers: list[str] | None = None,
        scopes: str = "openid email profile",
        timeout: float = 5.0,
        jwks_cache_ttl: int = 3600,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.accepted_client_ids = set(accepted_client_ids or [client_id])
        self.accepted_client_ids.add(client_id)
        self.authorization_endpoint = authorization_endpoint
        self.token_endpoint = token_endpoint
        self.jwks_url = jwks_url
        self.issuers = tuple(issuers or ["accounts.google.com", "https://accounts.google.com"])
        self.scopes = scopes
        self.timeout = timeout
        self.jwks_cache_ttl = jwks_cache_ttl
        self._http_client = http_client
        self._owns_client = http_client is None
        self._jwks: dict[str, Any] | None = None
        self._jwks_expires_at = 0.0

    @classmethod
    def from_settings(cls, settings: Settings) -> GoogleIdentityProvider:
        google = settings.auth.google
        accepted = google.accepted_client_ids
        if not accepted:
            msg = "auth.google.client_id is required for Google sign-in"
            raise IdentityProviderNotConfiguredError(msg)
        return cls(
            client_id=google.client_id or accepted[0],
            client_secret=settings.GOOGLE_CLIENT_SECRET or None,
            redirect_uri=google.redirect_uri,
            accepted_client_ids=accepted,
            authorization_endpoint=google.authorization_url,
            token_endpoint=google.token_url,
            jwks_url=google.jwks_url,
            issuers=google.issuers,
            scopes=google.scopes,
            timeout=google.timeout,
            jwks_cache_ttl=google.jwks_cache_ttl,
        )

    @property
    def provider_name(self) -> str:
        return "google"

    @property
    def supports_redirect_flow(self) -> bool:
        return bool(self.client_secret and self.redirect_uri)

    async def initialize(self) -> None:
        """Initialize the HTTP client with connection pooling."""
        if self._http_client is not None:
            return
        self._http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
        )
        self._owns_client = True
        logger.info("Google identity provider initialized", timeout=self.timeout)

    async def shutdown(self) -> None:
        """Close the HTTP client and release connections."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
            logger.debug("Google identity provider shutdown")

    async def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            await self.initialize()
        assert self._http_client is not None
        return self._http_client

    # =========================================================================
    # Redirect flow
    # =========================================================================

    def authorization_url(self, state: str) -> str:
        if not self.supports_redirect_flow:
            msg = "Google redirect sign-in requires a client secret and redirect URI"
            raise IdentityProviderNotConfiguredError(msg)
        url = httpx.URL(
            self.authorization_endpoint,
            params={
                "client_id": self.client_id,
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
                "scope": self.scopes,
                "state": state,
                "access_type": "online",
                "prompt": "select_account",
            },
        )
        return str(url)

    async def exchange_code(self, code: str) -> ExternalIdentity:
        if not self.supports_redirect_flow:
            msg = "Google redirect sign-in requires a client secret and redirect URI"
            raise IdentityProviderNotConfiguredError(msg)

        client = await self._client()
        try:
            response = await client.post(
                self.token_endpoint,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.warning("Google token exchange timed out", timeout=self.timeout)
            msg = "Google token exchange timed out"
            raise IdentityProviderUnavailableError(msg) from e
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Google rejected authorization code",
                status_code=e.response.status_code,
            )
            msg = "Authorization code rejected"
            raise IdentityVerificationError(msg) from e
        except httpx.RequestError as e:
            logger.exception("Google token endpoint unreachable")
            msg = "Google token endpoint unreachable"
            raise IdentityProviderUnavailableError(msg) from e

        tokens = _json_object(response, "token response")
        id_token = tokens.get("id_token")
        if not id_token:
            msg = "Token response did not include an id_token"
            raise IdentityVerificationError(msg)

        return await self._verify(
            id_token,
            audiences={self.client_id},
            access_token=tokens.get("access_token"),
        )

    # =========================================================================
    # ID token verification
    # =========================================================================

    async def verify_id_token(self, id_token: str) -> ExternalIdentity:
        return await self._verify(id_token, audiences=self.accepted_client_ids)

    async def _fetch_jwks(self) -> dict[str, Any]:
        client = await self._client()
        try:
            response = await client.get(self.jwks_url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            msg = "Fetching Google signing keys timed out"
            raise IdentityProviderUnavailableError(msg) from e
        except httpx.HTTPError as e:
            logger.exception("Failed to fetch Google signing keys")
            msg = "Google signing keys unavailable"
            raise IdentityProviderUnavailableError(msg) from e
        return _json_object(response, "signing keys")

    async def _get_jwks(self, *, force_refresh: bool = False) -> dict[str, Any]:
        now = time.monotonic()
        if not force_refresh and self._jwks is not None and now < self._jwks_expires_at:
            return self._jwks

        self._jwks = await self._fetch_jwks()
        self._jwks_expires_at = now + self.jwks_cache_ttl
        logger.info(
            "Google JWKS fetched and cached",
            keys=len(self._jwks.get("keys", [])),
            cache_ttl=self.jwks_cache_ttl,
        )
        return self._jwks

    async def _signing_key(self, kid: str | None) -> dict[str, Any]:
        for force_refresh in (False, True):
            jwks = await self._get_jwks(force_refresh=force_refresh)
            for key in jwks.get("keys", []):
                if key.get("kid") == kid:
                    return key
            logger.warning("Signing key not found in JWKS cache", kid=kid)
        msg = f"Signing key with kid={kid} not found"
        raise IdentityVerificationError(msg)

    async def _verify(
        self,
        id_token: str,
        *,
        audiences: set[str],
        access_token: str | None = None,
    ) -> ExternalIdentity:
        try:
            header = jwt.get_unverified_header(id_token)
        except JWTError as e:
            msg = "Malformed ID token"
            raise IdentityVerificationError(msg) from e

        if header.get("alg") not in _ALLOWED_ALGORITHMS:
            msg = f"Algorithm {header.get('alg')} not allowed"
            raise IdentityVerificationError(msg)

        key = await self._signing_key(header.get("kid"))
        try:
            claims = jwt.decode(
                id_token,
                key,
                algorithms=_ALLOWED_ALGORITHMS,
                issuer=self.issuers,
                access_token=access_token,
                options={
                    # Several client ids are accepted; checked below
                    "verify_aud": False,
                    "verify_at_hash": access_token is not None,
                    "require_exp": True,
                    "require_sub": True,
                },
            )
        except JWTError as e:
            logger.warning("Google ID token rejected", error=str(e))
            msg = "Invalid Google ID token"
            raise IdentityVerificationError(msg) from e

        token_audiences = claims.get("aud")
        if isinstance(token_audiences, str):
            token_audiences = [token_audiences]
        if not audiences.intersection(token_audiences or []):
            msg = "ID token was issued for a different client"
            raise IdentityVerificationError(msg)

        email = claims.get("email")
        if not email:
            msg = "ID token does not carry an email address"
            raise IdentityVerificationError(msg)

        return ExternalIdentity(
            external_id=str(claims["sub"]),
            email=email,
            email_verified=_as_bool(claims.get("email_verified", False)),
            display_name=claims.get("name"),
            picture_url=claims.get("picture"),
        )
