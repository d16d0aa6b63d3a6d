"""Abstract durable key-value backend.

The store and the logging toggle both persist through this interface.
Implementations must give read-your-writes consistency for a single
process; no transactions are assumed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class StorageBackend(ABC):
    """Named-record storage holding serialized text values."""

    async def connect(self) -> None:
        """Open connections, if the backend has any."""

    async def close(self) -> None:
        """Release connections, if the backend has any."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None if absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete ``key``. Removing an absent key is a no-op."""
        ...
