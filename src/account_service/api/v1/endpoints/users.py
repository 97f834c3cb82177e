"""Account management endpoints.

Every route needs a valid access token. Reads need ``getProfile`` (own
account) or ``getUsers`` (any account); writes need ``updateOwnProfile``
(own account) or ``manageUsers`` (any account).
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from account_service.api.dependencies import get_account_service
from account_service.auth.dependencies import (
    CurrentUser,
    RequirePermissions,
    ensure_owner_or_permission,
    require_any_permission,
)
from account_service.auth.permissions import Permission
from account_service.schemas import (
    AccountResponse,
    MessageResponse,
    UpdateAccountRequest,
)
from account_service.services.accounts import AccountService  # noqa: TC001


router = APIRouter(prefix="/users", tags=["Users"])

AccountId = Annotated[str, Path(description="Account id")]

_READ_ANY = require_any_permission(Permission.GET_PROFILE, Permission.GET_USERS)
_WRITE_ANY = require_any_permission(
    Permission.UPDATE_OWN_PROFILE,
    Permission.MANAGE_USERS,
)


@router.get(
    "",
    response_model=list[AccountResponse],
    summary="List accounts",
    responses={
        401: {"description": "Authentication required"},
        403: {"description": "Permission denied"},
    },
)
async def list_accounts(
    user: Annotated[CurrentUser, Depends(RequirePermissions(Permission.GET_USERS))],
    accounts: Annotated[AccountService, Depends(get_account_service)],
) -> list[AccountResponse]:
    """Return every account."""
    return [AccountResponse.from_account(a) for a in await accounts.list_accounts()]


@router.get(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Get an account",
    responses={
        401: {"description": "Authentication required"},
        403: {"description": "Permission denied or not the owner"},
        404: {"description": "User not found"},
    },
)
async def get_account(
    account_id: AccountId,
    user: Annotated[CurrentUser, Depends(_READ_ANY)],
    accounts: Annotated[AccountService, Depends(get_account_service)],
) -> AccountResponse:
    """Return one account; callers without ``getUsers`` only see their own."""
    ensure_owner_or_permission(user, account_id, Permission.GET_USERS)
    return AccountResponse.from_account(await accounts.get(account_id))


@router.put(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Update an account",
    responses={
        400: {"description": "No field given or invalid value"},
        401: {"description": "Authentication required"},
        403: {"description": "Permission denied or not the owner"},
        404: {"description": "User not found"},
        409: {"description": "Email already taken"},
    },
)
async def update_account(
    account_id: AccountId,
    body: UpdateAccountRequest,
    user: Annotated[CurrentUser, Depends(_WRITE_ANY)],
    accounts: Annotated[AccountService, Depends(get_account_service)],
) -> AccountResponse:
    """Change name and/or email. Role, password and provider links are untouched."""
    ensure_owner_or_permission(user, account_id, Permission.MANAGE_USERS)
    account = await accounts.update(
        account_id,
        name=body.name,
        email=str(body.email) if body.email is not None else None,
    )
    return AccountResponse.from_account(account)


@router.delete(
    "/{account_id}",
    response_model=MessageResponse,
    summary="Delete an account",
    responses={
        401: {"description": "Authentication required"},
        403: {"description": "Permission denied or not the owner"},
        404: {"description": "User not found"},
    },
)
async def delete_account(
    account_id: AccountId,
    user: Annotated[CurrentUser, Depends(_WRITE_ANY)],
    accounts: Annotated[AccountService, Depends(get_account_service)],
) -> MessageResponse:
    """Delete an account and revoke all of its refresh tokens."""
    ensure_owner_or_permission(user, account_id, Permission.MANAGE_USERS)
    await accounts.delete(account_id)
    return MessageResponse(message="User deleted successfully")
