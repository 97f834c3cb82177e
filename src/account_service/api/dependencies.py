"""FastAPI dependencies for service access.

Services are built once during application startup and stored on
``app.state``; these getters hand them to route handlers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import Request

from account_service.core.exceptions import ServiceUnavailableException


if TYPE_CHECKING:
    from account_service.core.config import Settings
    from account_service.database.repositories import AccountStore
    from account_service.services.accounts import AccountService
    from account_service.services.auth import (
        CredentialAuthenticator,
        FederatedAuthenticator,
        SessionIssuer,
    )


def _from_state(request: Request, name: str, label: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise ServiceUnavailableException(f"{label} not available")
    return value


def get_app_settings(request: Request) -> Settings:
    """Get the settings the application was created with."""
    settings: Settings = _from_state(request, "settings", "Configuration")
    return settings


def get_account_store(request: Request) -> AccountStore:
    """Get the account store (used by readiness checks)."""
    store: AccountStore = _from_state(request, "account_store", "Account store")
    return store


def get_account_service(request: Request) -> AccountService:
    """Get the account service.

    Raises:
        ServiceUnavailableException: 503 if the service is not initialized.
    """
    service: AccountService = _from_state(request, "account_service", "Account service")
    return service


def get_credential_authenticator(request: Request) -> CredentialAuthenticator:
    """Get the email/password authenticator."""
    authenticator: CredentialAuthenticator = _from_state(
        request, "credential_authenticator", "Credential authentication"
    )
    return authenticator


def get_federated_authenticator(request: Request) -> FederatedAuthenticator:
    """Get the Google sign-in authenticator."""
    authenticator: FederatedAuthenticator = _from_state(
        request, "federated_authenticator", "Google sign-in"
    )
    return authenticator


def get_session_issuer(request: Request) -> SessionIssuer:
    """Get the session issuer."""
    issuer: SessionIssuer = _from_state(request, "session_issuer", "Session service")
    return issuer
