"""Storage backends for the event log."""

from __future__ import annotations

from lifelog.backends.base import StorageBackend
from lifelog.backends.memory import MemoryBackend
from lifelog.backends.redis import RedisBackend
from lifelog.config import Settings

__all__ = ["MemoryBackend", "RedisBackend", "StorageBackend", "create_backend"]


def create_backend(settings: Settings) -> StorageBackend:
    """Build the backend named by ``settings.backend``."""
    if settings.backend == "memory":
        return MemoryBackend()
    if settings.backend == "redis":
        return RedisBackend(settings.redis_url)
    msg = f"Unknown storage backend: {settings.backend}"
    raise ValueError(msg)
