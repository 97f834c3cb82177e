"""Identity provider protocol definition."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable


if TYPE_CHECKING:
    from account_service.database.models import ExternalIdentity


@runtime_checkable
class IdentityProvider(Protocol):
    """Verifies external assertions and returns the identity they carry.

    Implementations must bound every network call with a timeout and raise
    ``IdentityVerificationError`` (or a subclass) on any failure.
    """

    @property
    def provider_name(self) -> str:
        """Short provider name, e.g. ``"google"``."""
        ...

    def authorization_url(self, state: str) -> str:
        """URL of the provider's consent screen for the redirect flow."""
        ...

    async def exchange_code(self, code: str) -> ExternalIdentity:
        """Redeem an authorization code and verify the returned identity."""
        ...

    async def verify_id_token(self, id_token: str) -> ExternalIdentity:
        """Verify an ID token obtained directly by a client app."""
        ...

    async def initialize(self) -> None:
        """Open network resources."""
        ...

    async def shutdown(self) -> None:
        """Release network resources."""
        ...
