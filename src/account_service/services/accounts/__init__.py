"""Account management service."""

from account_service.services.accounts.factory import (
    new_federated_account,
    new_local_account,
)
from account_service.services.accounts.service import AccountService


__all__ = [
    "AccountService",
    "new_federated_account",
    "new_local_account",
]
