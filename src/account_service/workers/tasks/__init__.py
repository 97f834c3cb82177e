"""Background task definitions."""

from account_service.workers.tasks.maintenance import purge_expired_refresh_tokens


__all__ = [
    "purge_expired_refresh_tokens",
]
