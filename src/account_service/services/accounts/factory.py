"""Constructors for new accounts.

Hashing happens here, before the persisted representation exists; the
stores never hash or otherwise transform a password.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from account_service.auth.permissions import DEFAULT_ROLE, Role
from account_service.database.models import (
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    Account,
    AuthOrigin,
    normalize_email,
)


if TYPE_CHECKING:
    from account_service.auth.passwords import PasswordHasher
    from account_service.database.models import ExternalIdentity


async def new_local_account(
    *,
    name: str,
    email: str,
    password: str,
    hasher: PasswordHasher,
    role: Role = DEFAULT_ROLE,
) -> Account:
    """Build a credential-based account with a hashed password."""
    now = datetime.now(UTC)
    return Account(
        id=str(uuid.uuid4()),
        name=name.strip(),
        email=normalize_email(email),
        password_hash=await hasher.hash(password),
        role=role,
        auth_origin=AuthOrigin.LOCAL,
        created_at=now,
        updated_at=now,
    )


def new_federated_account(identity: ExternalIdentity) -> Account:
    """Build a password-less account for a first-time Google sign-in.

    The display name falls back to the email address when the provider
    does not supply one long enough to be a valid account name.
    """
    now = datetime.now(UTC)
    name = (identity.display_name or "").strip()
    if len(name) < NAME_MIN_LENGTH:
        name = identity.email.strip()
    return Account(
        id=str(uuid.uuid4()),
        name=name[:NAME_MAX_LENGTH].strip(),
        email=normalize_email(identity.email),
        password_hash=None,
        role=DEFAULT_ROLE,
        external_id=identity.external_id,
        profile_picture=identity.picture_url,
        auth_origin=AuthOrigin.GOOGLE,
        created_at=now,
        updated_at=now,
    )
