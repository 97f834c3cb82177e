"""Identity provider exceptions.

Caught by the sign-in service and converted to 401 responses. A provider
that cannot be reached is an authentication failure, never a reason to
let the request through.
"""

from __future__ import annotations


class IdentityProviderError(Exception):
    """Base exception for identity provider errors."""


class IdentityVerificationError(IdentityProviderError):
    """Raised when an assertion or authorization code is rejected."""


class IdentityProviderUnavailableError(IdentityVerificationError):
    """Raised when the provider times out or cannot be reached."""


class IdentityProviderNotConfiguredError(IdentityProviderError):
    """Raised when sign-in is attempted without client credentials."""
