"""Configuration module with YAML and environment variable support."""

from .settings import Settings, StorageBackend, get_settings


__all__ = [
    "Settings",
    "StorageBackend",
    "get_settings",
]
