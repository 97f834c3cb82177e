"""Exceptions raised by the storage layer."""

from __future__ import annotations


class StoreError(Exception):
    """Base exception for storage errors."""


class DuplicateKeyError(StoreError):
    """A unique constraint rejected the write.

    ``field`` names the colliding attribute (``email``, ``external_id``
    or ``token``).
    """

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Duplicate value for {field}")


class UnknownAccountError(StoreError):
    """A ledger write referenced an account that no longer exists."""

    def __init__(self, account_id: str) -> None:
        self.account_id = account_id
        super().__init__(f"Account {account_id} does not exist")
