"""Sign-in services: credentials, federation and sessions."""

from account_service.services.auth.credentials import CredentialAuthenticator
from account_service.services.auth.federation import (
    FederatedAuthenticator,
    FederatedIdentityReconciler,
)
from account_service.services.auth.sessions import SessionIssuer


__all__ = [
    "CredentialAuthenticator",
    "FederatedAuthenticator",
    "FederatedIdentityReconciler",
    "SessionIssuer",
]
