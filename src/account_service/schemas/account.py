"""Account schemas.

The public representation never includes the password digest or the
external identity id.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import EmailStr, Field

from account_service.database.models import NAME_MAX_LENGTH, NAME_MIN_LENGTH, Account
from account_service.schemas.base import APIRequest, APIResponse


class AccountResponse(APIResponse):
    """Public account representation."""

    id: str = Field(..., description="Account id")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")
    role: str = Field(..., description="Role", examples=["user"])
    profile_picture: str | None = Field(default=None, description="Avatar URL")
    auth_provider: str = Field(
        ...,
        description="How the account was first created",
        examples=["local", "google"],
    )
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> AccountResponse:
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            role=str(account.role),
            profile_picture=account.profile_picture,
            auth_provider=str(account.auth_origin),
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class UpdateAccountRequest(APIRequest):
    """Profile update; at least one field must be present."""

    name: str | None = Field(
        default=None,
        min_length=NAME_MIN_LENGTH,
        max_length=NAME_MAX_LENGTH,
    )
    email: EmailStr | None = None
