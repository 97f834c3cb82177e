"""Ledger maintenance tasks.

Expired refresh-token records are already ignored (and dropped) on
lookup; the periodic sweep removes the ones nobody looks up again.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from account_service.observability.logging import get_logger


if TYPE_CHECKING:
    from account_service.database.repositories import RefreshTokenStore

logger = get_logger(__name__)


async def purge_expired_refresh_tokens(ctx: dict[str, Any]) -> dict[str, Any]:
    """Delete every ledger record whose expiry has passed.

    Args:
        ctx: ARQ worker context; ``refresh_tokens`` holds the ledger store.

    Returns:
        Result dict with the number of purged records.
    """
    store: RefreshTokenStore = ctx["refresh_tokens"]
    now = datetime.now(UTC)

    logger.info("Starting refresh token purge")
    purged = await store.purge_expired(now)
    logger.info("Refresh token purge complete", purged_count=purged)

    return {
        "status": "completed",
        "purged_count": purged,
        "purged_before": now.isoformat(),
    }
