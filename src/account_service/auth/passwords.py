"""Password hashing with Argon2id.

Hashing and verification are memory-hard and take tens of milliseconds,
so both run in a worker thread instead of on the event loop.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from argon2 import PasswordHasher as _Argon2Hasher
from argon2 import Type
from argon2.exceptions import InvalidHashError, VerificationError


if TYPE_CHECKING:
    from account_service.core.config import Settings


class PasswordHasher:
    """Hash and verify passwords.

    ``verify`` answers False for a mismatch or an unreadable digest so that
    callers can treat every failure the same way.
    """

    def __init__(
        self,
        *,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 4,
    ) -> None:
        self._hasher = _Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            type=Type.ID,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> PasswordHasher:
        params = settings.auth.password
        return cls(
            time_cost=params.time_cost,
            memory_cost=params.memory_cost,
            parallelism=params.parallelism,
        )

    async def hash(self, plaintext: str) -> str:
        return await asyncio.to_thread(self._hasher.hash, plaintext)

    async def verify(self, plaintext: str, digest: str) -> bool:
        return await asyncio.to_thread(self._verify, plaintext, digest)

    def _verify(self, plaintext: str, digest: str) -> bool:
        try:
            return self._hasher.verify(digest, plaintext)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, digest: str) -> bool:
        """True when ``digest`` was produced with outdated parameters.

        Only parses the digest header, so it is cheap enough to call inline.
        """
        try:
            return self._hasher.check_needs_rehash(digest)
        except InvalidHashError:
            return True
