"""Application lifecycle events."""

from account_service.core.events.lifespan import lifespan


__all__ = ["lifespan"]
