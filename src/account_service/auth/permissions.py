"""Role-Based Access Control (RBAC) registry.

Permissions are atomic capabilities; roles are named bundles of permissions.
The mapping is a process-wide read-only table built at import time.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import StrEnum
from types import MappingProxyType


class Permission(StrEnum):
    """Application permissions (wire values are camelCase)."""

    MANAGE_USERS = "manageUsers"
    GET_USERS = "getUsers"
    GET_PROFILE = "getProfile"
    UPDATE_OWN_PROFILE = "updateOwnProfile"


class Role(StrEnum):
    """Application roles. Every account holds exactly one."""

    ADMIN = "admin"
    USER = "user"
    THERAPIST = "therapist"


# Lowest-privilege role, assigned on registration and federated sign-up
DEFAULT_ROLE = Role.USER

ROLE_PERMISSIONS: Mapping[Role, frozenset[Permission]] = MappingProxyType(
    {
        Role.ADMIN: frozenset(Permission),
        Role.USER: frozenset(
            {
                Permission.GET_PROFILE,
                Permission.UPDATE_OWN_PROFILE,
            }
        ),
        Role.THERAPIST: frozenset(
            {
                Permission.GET_PROFILE,
                Permission.UPDATE_OWN_PROFILE,
            }
        ),
    }
)


def get_permissions(role: Role | str) -> frozenset[Permission]:
    """Get the permission set of a role.

    Unknown roles resolve to an empty set instead of raising, so a token
    minted before a role was retired simply carries no capabilities.

    Args:
        role: Role enum member or its string value.

    Returns:
        Frozen set of permissions for the role.
    """
    try:
        return ROLE_PERMISSIONS.get(Role(role), frozenset())
    except ValueError:
        return frozenset()


def has_permission(
    granted: Iterable[Permission | str],
    required: Permission | str,
) -> bool:
    """Check that ``required`` is among the granted permissions."""
    return str(required) in {str(p) for p in granted}


def has_all_permissions(
    granted: Iterable[Permission | str],
    required: Iterable[Permission | str],
) -> bool:
    """Check that every required permission is granted."""
    granted_values = {str(p) for p in granted}
    return all(str(p) in granted_values for p in required)


def has_any_permission(
    granted: Iterable[Permission | str],
    required: Iterable[Permission | str],
) -> bool:
    """Check that at least one required permission is granted."""
    granted_values = {str(p) for p in granted}
    return any(str(p) in granted_values for p in required)


def has_role(role: Role | str, required: Role | str) -> bool:
    """Check for an exact role match."""
    return str(role) == str(required)
