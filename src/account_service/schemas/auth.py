"""Authentication request and response schemas."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import EmailStr, Field

from account_service.database.models import (
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    PASSWORD_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
)
from account_service.schemas.account import AccountResponse
from account_service.schemas.base import APIRequest, APIResponse


if TYPE_CHECKING:
    from account_service.auth.jwt import TokenPair
    from account_service.database.models import Account


class RegisterRequest(APIRequest):
    """Local account registration."""

    name: str = Field(
        ...,
        min_length=NAME_MIN_LENGTH,
        max_length=NAME_MAX_LENGTH,
        description="Display name",
        examples=["Ada Lovelace"],
    )
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LENGTH,
        max_length=PASSWORD_MAX_LENGTH,
        description="Password (6-50 characters)",
    )


class LoginRequest(APIRequest):
    """Email and password sign-in."""

    email: str = Field(..., min_length=1, description="Email address")
    password: str = Field(..., min_length=1, description="Password")


class RefreshTokenRequest(APIRequest):
    """Refresh-token rotation request."""

    refresh_token: str = Field(..., min_length=1, description="Valid refresh token")


class LogoutRequest(APIRequest):
    """Refresh-token revocation request."""

    refresh_token: str = Field(..., min_length=1, description="Refresh token to revoke")


class ChangePasswordRequest(APIRequest):
    """Password change for the authenticated account."""

    old_password: str = Field(..., min_length=1, description="Current password")
    new_password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LENGTH,
        max_length=PASSWORD_MAX_LENGTH,
        description="New password (6-50 characters)",
    )


class GoogleMobileRequest(APIRequest):
    """Google ID token obtained by a native client."""

    id_token: str = Field(..., min_length=1, description="Google-signed ID token")


class TokenPairResponse(APIResponse):
    """Access and refresh token pair."""

    access_token: str = Field(..., description="Short-lived JWT access token")
    refresh_token: str = Field(..., description="Long-lived JWT refresh token")

    @classmethod
    def from_pair(cls, pair: TokenPair) -> TokenPairResponse:
        return cls(access_token=pair.access_token, refresh_token=pair.refresh_token)


class AuthResponse(APIResponse):
    """Successful sign-in: the account and its new session."""

    user: AccountResponse
    tokens: TokenPairResponse

    @classmethod
    def from_session(cls, account: Account, pair: TokenPair) -> AuthResponse:
        return cls(
            user=AccountResponse.from_account(account),
            tokens=TokenPairResponse.from_pair(pair),
        )


class MessageResponse(APIResponse):
    """Plain confirmation message."""

    message: str
