"""Unit tests for account records and their invariants."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from account_service.auth.permissions import Role
from account_service.database.models import (
    Account,
    AccountInvariantError,
    AuthOrigin,
    ExternalIdentity,
    RefreshTokenRecord,
    normalize_email,
    validate_account,
)
from account_service.services.accounts import new_federated_account


pytestmark = pytest.mark.unit

NOW = datetime(2026, 1, 1, tzinfo=UTC)


def _account(**overrides: object) -> Account:
    fields: dict[str, object] = {
        "id": "account-1",
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "password_hash": "$argon2id$digest",
        "created_at": NOW,
        "updated_at": NOW,
    }
    fields.update(overrides)
    return Account(**fields)


class TestValidateAccount:
    """Tests for validate_account."""

    def test_valid_local_account(self) -> None:
        """Should accept a well-formed local account."""
        validate_account(_account())

    def test_local_account_requires_password(self) -> None:
        """Should reject a local account without a password hash."""
        with pytest.raises(AccountInvariantError, match="Password is required"):
            validate_account(_account(password_hash=None))

    def test_federated_account_without_password(self) -> None:
        """Should accept a Google-created account without a password."""
        validate_account(
            _account(password_hash=None, auth_origin=AuthOrigin.GOOGLE, external_id="g-1")
        )

    def test_email_must_be_lower_case(self) -> None:
        """Should reject an email that was not normalized."""
        with pytest.raises(AccountInvariantError, match="lower-cased"):
            validate_account(_account(email="Ada@Example.com"))

    @pytest.mark.parametrize("email", ["ada", "ada@example", "ada @example.com"])
    def test_email_must_look_like_an_address(self, email: str) -> None:
        """Should reject malformed addresses."""
        with pytest.raises(AccountInvariantError, match="valid email"):
            validate_account(_account(email=email))

    @pytest.mark.parametrize("name", ["A", "x" * 101])
    def test_name_length(self, name: str) -> None:
        """Should enforce the name length bounds."""
        with pytest.raises(AccountInvariantError, match="between 2 and 100"):
            validate_account(_account(name=name))

    def test_name_must_be_trimmed(self) -> None:
        """Should reject surrounding whitespace."""
        with pytest.raises(AccountInvariantError, match="trimmed"):
            validate_account(_account(name=" Ada "))


class TestRecords:
    """Tests for the record helpers."""

    def test_normalize_email(self) -> None:
        assert normalize_email("  Ada@Example.COM ") == "ada@example.com"

    def test_default_role_and_origin(self) -> None:
        """Should default to the user role and local origin."""
        account = _account()

        assert account.role is Role.USER
        assert account.auth_origin is AuthOrigin.LOCAL
        assert account.has_password is True

    def test_refresh_record_expiry(self) -> None:
        """Should be expired at and after its expiry instant."""
        record = RefreshTokenRecord(
            token="t",
            account_id="account-1",
            expires_at=NOW,
            created_at=NOW - timedelta(days=7),
        )

        assert record.is_expired(NOW - timedelta(seconds=1)) is False
        assert record.is_expired(NOW) is True


class TestNewFederatedAccount:
    """Tests for building accounts from external identities."""

    def test_fields_from_identity(self, google_identity: ExternalIdentity) -> None:
        """Should copy the identity and normalize the email."""
        account = new_federated_account(google_identity)

        assert account.email == "ada@example.com"
        assert account.external_id == "google-sub-123"
        assert account.name == "Ada L."
        assert account.profile_picture == google_identity.picture_url
        assert account.auth_origin is AuthOrigin.GOOGLE
        assert account.role is Role.USER
        assert account.password_hash is None
        validate_account(account)

    def test_name_falls_back_to_email(self) -> None:
        """Should use the email when no display name is provided."""
        identity = ExternalIdentity(
            external_id="g-2", email="bob@example.com", email_verified=True
        )

        assert new_federated_account(identity).name == "bob@example.com"

    @pytest.mark.parametrize("display_name", ["J", " J ", "  "])
    def test_short_display_name_falls_back_to_email(self, display_name: str) -> None:
        """Should not build an invalid name from a one-letter profile name."""
        identity = ExternalIdentity(
            external_id="g-3",
            email="j@example.com",
            email_verified=True,
            display_name=display_name,
        )

        account = new_federated_account(identity)

        assert account.name == "j@example.com"
        validate_account(account)
