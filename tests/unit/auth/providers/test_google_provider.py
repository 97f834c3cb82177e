"""Unit tests for the Google identity provider.

Google's JWKS and token endpoints are mocked with respx; ID tokens are
signed with a throwaway RSA key published through the mocked JWKS.
"""

from __future__ import annotations

import time
from typing import Any
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
import respx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from account_service.auth.providers import (
    GoogleIdentityProvider,
    IdentityProviderNotConfiguredError,
    IdentityProviderUnavailableError,
    IdentityVerificationError,
)
from account_service.core.config import Settings


pytestmark = pytest.mark.unit

CLIENT_ID = "web-client.apps.googleusercontent.com"
MOBILE_CLIENT_ID = "ios-client.apps.googleusercontent.com"
JWKS_URL = "https://keys.test/certs"
TOKEN_URL = "https://oauth.test/token"  # noqa: S105

HTML_ERROR_PAGE = "<html><body>502 Bad Gateway</body></html>"

KeyPair = tuple[str, dict[str, Any]]


def _rsa_key() -> KeyPair:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    return private_pem, public_jwk


@pytest.fixture(scope="module")
def signing_key() -> KeyPair:
    return _rsa_key()


def _jwks(public_jwk: dict[str, Any], kid: str = "key-1") -> httpx.Response:
    return httpx.Response(200, json={"keys": [{**public_jwk, "kid": kid}]})


def _mock_jwks(public_jwk: dict[str, Any], kid: str = "key-1") -> respx.Route:
    return respx.get(JWKS_URL).mock(return_value=_jwks(public_jwk, kid))


def _id_token(
    private_pem: str,
    *,
    kid: str = "key-1",
    **overrides: Any,
) -> str:
    now = int(time.time())
    claims: dict[str, Any] = {
        "iss": "https://accounts.google.com",
        "aud": CLIENT_ID,
        "sub": "google-sub-123",
        "email": "ada@example.com",
        "email_verified": True,
        "name": "Ada Lovelace",
        "picture": "https://lh3.googleusercontent.com/a/ada.png",
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    return jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": kid})


def _provider(**kwargs: Any) -> GoogleIdentityProvider:
    options: dict[str, Any] = {
        "client_id": CLIENT_ID,
        "client_secret": "google-secret",
        "redirect_uri": "https://app.test/api/v1/auth/oauth/callback",
        "accepted_client_ids": [CLIENT_ID, MOBILE_CLIENT_ID],
        "token_endpoint": TOKEN_URL,
        "jwks_url": JWKS_URL,
    }
    options.update(kwargs)
    return GoogleIdentityProvider(http_client=httpx.AsyncClient(), **options)


# =============================================================================
# ID token verification
# =============================================================================


class TestVerifyIdToken:
    """Tests for verify_id_token."""

    @respx.mock
    async def test_valid_token(self, signing_key: KeyPair) -> None:
        """Should return the asserted identity."""
        private_pem, public_jwk = signing_key
        _mock_jwks(public_jwk)

        identity = await _provider().verify_id_token(_id_token(private_pem))

        assert identity.external_id == "google-sub-123"
        assert identity.email == "ada@example.com"
        assert identity.email_verified is True
        assert identity.display_name == "Ada Lovelace"
        assert identity.picture_url == "https://lh3.googleusercontent.com/a/ada.png"

    @respx.mock
    async def test_accepts_additional_client_id(self, signing_key: KeyPair) -> None:
        """Should accept tokens minted for a mobile client id."""
        private_pem, public_jwk = signing_key
        _mock_jwks(public_jwk)

        identity = await _provider().verify_id_token(
            _id_token(private_pem, aud=MOBILE_CLIENT_ID)
        )

        assert identity.external_id == "google-sub-123"

    @respx.mock
    async def test_rejects_foreign_audience(self, signing_key: KeyPair) -> None:
        """Should reject tokens minted for another application."""
        private_pem, public_jwk = signing_key
        _mock_jwks(public_jwk)

        with pytest.raises(IdentityVerificationError, match="different client"):
            await _provider().verify_id_token(_id_token(private_pem, aud="someone-else"))

    @respx.mock
    async def test_rejects_foreign_issuer(self, signing_key: KeyPair) -> None:
        """Should reject tokens not issued by Google."""
        private_pem, public_jwk = signing_key
        _mock_jwks(public_jwk)

        with pytest.raises(IdentityVerificationError):
            await _provider().verify_id_token(
                _id_token(private_pem, iss="https://evil.example.com")
            )

    @respx.mock
    async def test_rejects_expired_token(self, signing_key: KeyPair) -> None:
        """Should reject expired ID tokens."""
        private_pem, public_jwk = signing_key
        _mock_jwks(public_jwk)
        past = int(time.time()) - 7200

        with pytest.raises(IdentityVerificationError):
            await _provider().verify_id_token(
                _id_token(private_pem, iat=past, exp=past + 60)
            )

    @respx.mock
    async def test_rejects_other_signing_key(self, signing_key: KeyPair) -> None:
        """Should reject a token signed by a key that is not published."""
        _, public_jwk = signing_key
        other_pem, _ = _rsa_key()
        _mock_jwks(public_jwk)

        with pytest.raises(IdentityVerificationError):
            await _provider().verify_id_token(_id_token(other_pem))

    @respx.mock
    async def test_rejects_malformed_token(self) -> None:
        """Should reject garbage input without calling Google."""
        with pytest.raises(IdentityVerificationError, match="Malformed"):
            await _provider().verify_id_token("not-a-jwt")

    @respx.mock
    async def test_rejects_token_without_email(self, signing_key: KeyPair) -> None:
        """Should require an email claim."""
        private_pem, public_jwk = signing_key
        _mock_jwks(public_jwk)

        with pytest.raises(IdentityVerificationError, match="email"):
            await _provider().verify_id_token(_id_token(private_pem, email=""))

    @pytest.mark.parametrize(
        ("claim", "expected"),
        [("true", True), ("false", False), ("True", True), (False, False)],
    )
    @respx.mock
    async def test_email_verified_strings(
        self,
        signing_key: KeyPair,
        claim: Any,
        expected: bool,
    ) -> None:
        """Should read email_verified sent as a string or boolean."""
        private_pem, public_jwk = signing_key
        _mock_jwks(public_jwk)

        identity = await _provider().verify_id_token(
            _id_token(private_pem, email_verified=claim)
        )

        assert identity.email_verified is expected


# =============================================================================
# Signing key cache
# =============================================================================


class TestSigningKeys:
    """Tests for JWKS caching and key rotation."""

    @respx.mock
    async def test_jwks_is_cached(self, signing_key: KeyPair) -> None:
        """Should fetch the key set once for several tokens."""
        private_pem, public_jwk = signing_key
        route = _mock_jwks(public_jwk)
        provider = _provider()

        await provider.verify_id_token(_id_token(private_pem))
        await provider.verify_id_token(_id_token(private_pem))

        assert route.call_count == 1

    @respx.mock
    async def test_unknown_kid_triggers_refetch(self, signing_key: KeyPair) -> None:
        """Should refetch once when Google rotated its keys."""
        private_pem, public_jwk = signing_key
        route = respx.get(JWKS_URL).mock(
            side_effect=[_jwks(public_jwk, "old-key"), _jwks(public_jwk, "new-key")]
        )
        provider = _provider()
        await provider.verify_id_token(_id_token(private_pem, kid="old-key"))

        identity = await provider.verify_id_token(_id_token(private_pem, kid="new-key"))

        assert identity.external_id == "google-sub-123"
        assert route.call_count == 2

    @respx.mock
    async def test_missing_kid_after_refetch(self, signing_key: KeyPair) -> None:
        """Should give up after one refetch."""
        private_pem, public_jwk = signing_key
        route = _mock_jwks(public_jwk)

        with pytest.raises(IdentityVerificationError, match="not found"):
            await _provider().verify_id_token(_id_token(private_pem, kid="unknown"))

        assert route.call_count == 2

    @respx.mock
    async def test_jwks_unreachable(self, signing_key: KeyPair) -> None:
        """Should fail closed when the key set cannot be fetched."""
        private_pem, _ = signing_key
        respx.get(JWKS_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(IdentityProviderUnavailableError):
            await _provider().verify_id_token(_id_token(private_pem))

    @respx.mock
    async def test_jwks_html_body(self, signing_key: KeyPair) -> None:
        """Should treat an HTML page from the JWKS endpoint as unavailable."""
        private_pem, _ = signing_key
        respx.get(JWKS_URL).mock(
            return_value=httpx.Response(
                200, text=HTML_ERROR_PAGE, headers={"content-type": "text/html"}
            )
        )

        with pytest.raises(IdentityProviderUnavailableError, match="not valid JSON"):
            await _provider().verify_id_token(_id_token(private_pem))

    @respx.mock
    async def test_jwks_not_an_object(self, signing_key: KeyPair) -> None:
        private_pem, _ = signing_key
        respx.get(JWKS_URL).mock(return_value=httpx.Response(200, json=["key"]))

        with pytest.raises(IdentityProviderUnavailableError, match="JSON object"):
            await _provider().verify_id_token(_id_token(private_pem))


# =============================================================================
# Redirect flow
# =============================================================================


class TestRedirectFlow:
    """Tests for the authorization code flow."""

    def test_authorization_url(self) -> None:
        """Should point at the consent screen with client id and state."""
        url = urlparse(_provider().authorization_url("state-123"))
        query = parse_qs(url.query)

        assert url.netloc == "accounts.google.com"
        assert query["client_id"] == [CLIENT_ID]
        assert query["state"] == ["state-123"]
        assert query["response_type"] == ["code"]
        assert query["scope"] == ["openid email profile"]

    def test_redirect_flow_requires_secret(self) -> None:
        """Should refuse the redirect flow without a client secret."""
        provider = _provider(client_secret=None)

        assert provider.supports_redirect_flow is False
        with pytest.raises(IdentityProviderNotConfiguredError):
            provider.authorization_url("state-123")

    @respx.mock
    async def test_exchange_code(self, signing_key: KeyPair) -> None:
        """Should redeem the code and verify the returned ID token."""
        private_pem, public_jwk = signing_key
        _mock_jwks(public_jwk)
        token_route = respx.post(TOKEN_URL).mock(
            return_value=httpx.Response(
                200,
                json={"id_token": _id_token(private_pem), "access_token": "ya29.token"},
            )
        )

        identity = await _provider().exchange_code("auth-code")

        assert identity.email == "ada@example.com"
        body = parse_qs(token_route.calls.last.request.content.decode())
        assert body["code"] == ["auth-code"]
        assert body["grant_type"] == ["authorization_code"]

    @respx.mock
    async def test_exchange_code_requires_web_audience(self, signing_key: KeyPair) -> None:
        """Should only accept the web client id on the redirect flow."""
        private_pem, public_jwk = signing_key
        _mock_jwks(public_jwk)
        respx.post(TOKEN_URL).mock(
            return_value=httpx.Response(
                200, json={"id_token": _id_token(private_pem, aud=MOBILE_CLIENT_ID)}
            )
        )

        with pytest.raises(IdentityVerificationError):
            await _provider().exchange_code("auth-code")

    @respx.mock
    async def test_exchange_code_rejected(self) -> None:
        """Should treat a rejected code as a verification failure."""
        respx.post(TOKEN_URL).mock(
            return_value=httpx.Response(400, json={"error": "invalid_grant"})
        )

        with pytest.raises(IdentityVerificationError, match="rejected"):
            await _provider().exchange_code("bad-code")

    @respx.mock
    async def test_exchange_code_without_id_token(self) -> None:
        """Should reject a token response lacking an ID token."""
        respx.post(TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"access_token": "ya29.token"})
        )

        with pytest.raises(IdentityVerificationError, match="id_token"):
            await _provider().exchange_code("auth-code")

    @respx.mock
    async def test_exchange_code_html_body(self) -> None:
        """Should treat an HTML page from the token endpoint as unavailable."""
        respx.post(TOKEN_URL).mock(
            return_value=httpx.Response(
                200, text=HTML_ERROR_PAGE, headers={"content-type": "text/html"}
            )
        )

        with pytest.raises(IdentityProviderUnavailableError, match="not valid JSON"):
            await _provider().exchange_code("auth-code")

    @respx.mock
    async def test_exchange_code_timeout(self) -> None:
        respx.post(TOKEN_URL).mock(side_effect=httpx.ReadTimeout("timed out"))

        with pytest.raises(IdentityProviderUnavailableError, match="timed out"):
            await _provider().exchange_code("auth-code")


# =============================================================================
# Configuration
# =============================================================================


class TestFromSettings:
    """Tests for building the provider from settings."""

    def test_requires_client_id(self) -> None:
        """Should refuse to build without any client id."""
        settings = Settings(APP_ENV="test")

        with pytest.raises(IdentityProviderNotConfiguredError):
            GoogleIdentityProvider.from_settings(settings)

    def test_reads_google_section(self) -> None:
        """Should pick up client ids and the secret."""
        settings = Settings(
            APP_ENV="test",
            GOOGLE_CLIENT_SECRET="google-secret",
            auth={
                "google": {
                    "client_id": CLIENT_ID,
                    "additional_client_ids": MOBILE_CLIENT_ID,
                    "redirect_uri": "https://app.test/callback",
                }
            },
        )

        provider = GoogleIdentityProvider.from_settings(settings)

        assert provider.client_id == CLIENT_ID
        assert provider.accepted_client_ids == {CLIENT_ID, MOBILE_CLIENT_ID}
        assert provider.supports_redirect_flow is True
