"""Local authentication endpoints.

Provides:
- POST /auth/register and POST /auth/login (rate limited per client IP)
- POST /auth/refresh for refresh-token rotation
- POST /auth/logout for refresh-token revocation
- POST /auth/change-password for the authenticated account
"""

# No postponed annotations: the rate limiter wraps route functions.

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from account_service.api.dependencies import (
    get_account_service,
    get_credential_authenticator,
    get_session_issuer,
)
from account_service.auth.dependencies import CurrentUser, get_current_user
from account_service.cache.rate_limit import rate_limit_auth
from account_service.schemas import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    TokenPairResponse,
)
from account_service.services.accounts import AccountService
from account_service.services.auth import CredentialAuthenticator, SessionIssuer


router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a local account",
    responses={
        400: {"description": "Invalid name, email or password"},
        409: {"description": "Email already exists"},
        429: {"description": "Too many requests"},
    },
)
@rate_limit_auth()
async def register(
    request: Request,
    body: RegisterRequest,
    accounts: Annotated[AccountService, Depends(get_account_service)],
    sessions: Annotated[SessionIssuer, Depends(get_session_issuer)],
) -> AuthResponse:
    """Create an account with the default role and open a session for it."""
    account = await accounts.register(body.name, body.email, body.password)
    pair = await sessions.issue_session_for(account)
    return AuthResponse.from_session(account, pair)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Sign in with email and password",
    responses={
        401: {"description": "Invalid email or password"},
        429: {"description": "Too many requests"},
    },
)
@rate_limit_auth()
async def login(
    request: Request,
    body: LoginRequest,
    authenticator: Annotated[
        CredentialAuthenticator, Depends(get_credential_authenticator)
    ],
    sessions: Annotated[SessionIssuer, Depends(get_session_issuer)],
) -> AuthResponse:
    """Verify credentials and open a session.

    Unknown email, wrong password and password-less (Google-only) accounts
    are indistinguishable to the caller.
    """
    account = await authenticator.authenticate(body.email, body.password)
    pair = await sessions.issue_session_for(account)
    return AuthResponse.from_session(account, pair)


@router.post(
    "/refresh",
    response_model=TokenPairResponse,
    summary="Rotate a refresh token",
    responses={
        401: {"description": "Invalid, expired or revoked refresh token"},
        404: {"description": "User not found"},
    },
)
async def refresh(
    body: RefreshTokenRequest,
    sessions: Annotated[SessionIssuer, Depends(get_session_issuer)],
) -> TokenPairResponse:
    """Exchange a refresh token for a new pair; the old token stops working."""
    pair = await sessions.refresh(body.refresh_token)
    return TokenPairResponse.from_pair(pair)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Revoke a refresh token",
    responses={404: {"description": "Refresh token not found"}},
)
async def logout(
    body: LogoutRequest,
    sessions: Annotated[SessionIssuer, Depends(get_session_issuer)],
) -> MessageResponse:
    """End the session bound to a refresh token.

    Outstanding access tokens stay valid until they expire.
    """
    await sessions.revoke(body.refresh_token)
    return MessageResponse(message="Logged out successfully")


@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change the caller's password",
    responses={
        401: {"description": "Authentication required or incorrect old password"},
    },
)
async def change_password(
    body: ChangePasswordRequest,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    accounts: Annotated[AccountService, Depends(get_account_service)],
) -> MessageResponse:
    """Replace the password of the authenticated account."""
    await accounts.change_password(user.id, body.old_password, body.new_password)
    return MessageResponse(message="Password changed successfully")
