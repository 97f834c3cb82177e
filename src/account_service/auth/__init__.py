"""Authentication and authorization.

- ``permissions``: role/permission registry
- ``jwt``: session token codec
- ``passwords``: Argon2id hashing
- ``providers``: external identity providers (Google)
- ``dependencies``: request authenticator and authorization gate
"""

from account_service.auth.permissions import DEFAULT_ROLE, Permission, Role


__all__ = [
    "DEFAULT_ROLE",
    "Permission",
    "Role",
]
