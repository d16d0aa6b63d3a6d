"""In-process backend for tests and ephemeral runs."""

from __future__ import annotations

from lifelog.backends.base import StorageBackend


class MemoryBackend(StorageBackend):
    """Dict of serialized values. Nothing survives the process."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data
