"""External identity providers."""

from account_service.auth.providers.exceptions import (
    IdentityProviderError,
    IdentityProviderNotConfiguredError,
    IdentityProviderUnavailableError,
    IdentityVerificationError,
)
from account_service.auth.providers.google import GoogleIdentityProvider
from account_service.auth.providers.protocol import IdentityProvider


__all__ = [
    "GoogleIdentityProvider",
    "IdentityProvider",
    "IdentityProviderError",
    "IdentityProviderNotConfiguredError",
    "IdentityProviderUnavailableError",
    "IdentityVerificationError",
]
