"""FastAPI security dependencies.

``get_current_user`` is the request authenticator: it reads the bearer
token, verifies it with the token codec and exposes the caller's id,
email, role and permission set. It never reads the database; the role in
the token is trusted until the token expires.

The authorization gate is a set of predicates evaluated on that identity
(role equality, all/any permissions, ownership) plus dependency classes
that apply them to routes. All of them fail with 403.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict

from account_service.auth.jwt import (  # noqa: TC001
    TokenCodec,
    TokenExpiredError,
    TokenInvalidError,
)
from account_service.auth.permissions import (
    Permission,
    Role,
    get_permissions,
    has_all_permissions,
    has_any_permission,
    has_permission,
    has_role,
)
from account_service.core.exceptions import (
    AuthenticationRequiredException,
    ForbiddenException,
    ServiceUnavailableException,
)
from account_service.observability.logging import bind_context


if TYPE_CHECKING:
    from account_service.auth.jwt import TokenClaims


bearer_scheme = HTTPBearer(
    scheme_name="JWT",
    description="Access token issued by /auth/login",
    auto_error=False,
)


class CurrentUser(BaseModel):
    """Identity attached to an authenticated request."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    role: str
    permissions: frozenset[Permission] = frozenset()

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> CurrentUser:
        return cls(
            id=claims.subject_id,
            email=claims.email,
            role=claims.role,
            permissions=get_permissions(claims.role),
        )

    def has_permission(self, permission: Permission | str) -> bool:
        return has_permission(self.permissions, permission)

    def has_role(self, role: Role | str) -> bool:
        return has_role(self.role, role)

    def is_admin(self) -> bool:
        return self.has_role(Role.ADMIN)


def get_token_codec(request: Request) -> TokenCodec:
    """Get the token codec from app state."""
    codec: TokenCodec | None = getattr(request.app.state, "token_codec", None)
    if codec is None:
        raise ServiceUnavailableException("Authentication is not available")
    return codec


async def get_current_user(
    request: Request,
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> CurrentUser:
    """Authenticate the request from its ``Authorization: Bearer`` header.

    Raises:
        AuthenticationRequiredException: Missing, malformed, invalid or
            expired access token.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequiredException

    try:
        claims = codec.verify_access(credentials.credentials)
    except TokenExpiredError as e:
        raise AuthenticationRequiredException("Access token expired") from e
    except TokenInvalidError as e:
        raise AuthenticationRequiredException("Invalid access token") from e

    user = CurrentUser.from_claims(claims)
    request.state.user = user
    bind_context(account_id=user.id)
    return user


# =============================================================================
# Authorization predicates
# =============================================================================


def _permission_message(permissions: Iterable[Permission | str], joiner: str) -> str:
    return f"Permission denied. Required permission: {joiner.join(map(str, permissions))}"


def ensure_role(user: CurrentUser, role: Role | str) -> None:
    """Require an exact role match."""
    if not user.has_role(role):
        raise ForbiddenException(f"Access denied. Required role: {role}")


def ensure_all_permissions(
    user: CurrentUser,
    permissions: Iterable[Permission | str],
) -> None:
    """Require every listed permission."""
    required = list(permissions)
    if not has_all_permissions(user.permissions, required):
        missing = [p for p in required if not user.has_permission(p)]
        raise ForbiddenException(_permission_message(missing, ", "))


def ensure_any_permission(
    user: CurrentUser,
    permissions: Iterable[Permission | str],
) -> None:
    """Require at least one listed permission."""
    required = list(permissions)
    if not has_any_permission(user.permissions, required):
        raise ForbiddenException(_permission_message(required, " or "))


def ensure_owner_or_permission(
    user: CurrentUser,
    resource_owner_id: str,
    override: Permission | str,
    message: str = "You can only access your own profile",
) -> None:
    """Require that the caller owns the resource OR holds ``override``."""
    if user.id != resource_owner_id and not user.has_permission(override):
        raise ForbiddenException(message)


# =============================================================================
# Route dependencies
# =============================================================================


class RequireRole:
    """Dependency requiring one exact role.

    Usage:
        @router.get("/admin/stats")
        async def stats(user: Annotated[CurrentUser, Depends(RequireRole(Role.ADMIN))]):
            ...
    """

    def __init__(self, role: Role | str) -> None:
        self.role = role

    async def __call__(
        self,
        user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        ensure_role(user, self.role)
        return user


class RequirePermissions:
    """Dependency requiring permissions.

    Usage:
        @router.get("/users")
        async def list_users(
            user: Annotated[CurrentUser, Depends(RequirePermissions(Permission.GET_USERS))]
        ):
            ...
    """

    def __init__(
        self,
        *permissions: Permission | str,
        require_all: bool = True,
    ) -> None:
        """Initialize permission requirement.

        Args:
            permissions: Required permissions.
            require_all: If True, the caller needs ALL permissions.
                        If False, at least one.
        """
        self.permissions = list(permissions)
        self.require_all = require_all

    async def __call__(
        self,
        user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if self.require_all:
            ensure_all_permissions(user, self.permissions)
        else:
            ensure_any_permission(user, self.permissions)
        return user


class RequireOwnerOrPermission:
    """Dependency requiring ownership of a path resource or an override.

    The resource owner id is read from the path parameter ``param``.

    Usage:
        @router.put("/users/{account_id}")
        async def update(
            user: Annotated[
                CurrentUser,
                Depends(RequireOwnerOrPermission(Permission.MANAGE_USERS)),
            ],
        ):
            ...
    """

    def __init__(
        self,
        override: Permission | str,
        *,
        param: str = "account_id",
        message: str = "You can only access your own profile",
    ) -> None:
        self.override = override
        self.param = param
        self.message = message

    async def __call__(
        self,
        request: Request,
        user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        owner_id = request.path_params.get(self.param, "")
        ensure_owner_or_permission(user, str(owner_id), self.override, self.message)
        return user


def require_permissions(
    *permissions: Permission | str,
    require_all: bool = True,
) -> RequirePermissions:
    """Create a permission requirement dependency."""
    return RequirePermissions(*permissions, require_all=require_all)


def require_any_permission(*permissions: Permission | str) -> RequirePermissions:
    """Create a dependency satisfied by any one of ``permissions``."""
    return RequirePermissions(*permissions, require_all=False)


RequireAdmin = RequireRole(Role.ADMIN)
