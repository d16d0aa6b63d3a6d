"""Bounded log store.

Keeps the ordered record sequence (newest first) under a single backend
key and enforces the capacity cap by dropping from the tail.

Every mutation is one read-modify-write cycle held under an asyncio lock,
so concurrent appends inside this process cannot lose each other's
updates. Each backend call is bounded by a timeout; a timeout counts as
a storage failure.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import structlog
from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from lifelog.backends.base import StorageBackend
from lifelog.exceptions import StorageFailure
from lifelog.schemas import EventRecord, LogDocument

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_MAX_ENTRIES = 1000


async def bounded(call: Awaitable[T], timeout: float, what: str) -> T:
    """Await a backend call, translating timeouts into StorageFailure."""
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except TimeoutError as exc:
        raise StorageFailure(f"{what} timed out after {timeout}s") from exc


class BoundedLogStore:
    """Ordered, capacity-bounded record log persisted in one named record."""

    def __init__(
        self,
        backend: StorageBackend,
        key: str = "lifelog:entries",
        max_entries: int = DEFAULT_MAX_ENTRIES,
        timeout: float = 5.0,
    ) -> None:
        self._backend = backend
        self._key = key
        self.max_entries = max_entries
        self._timeout = timeout
        self._lock = asyncio.Lock()

    async def load_all(self) -> list[EventRecord]:
        """Return every stored record, newest first."""
        return await self._read()

    async def append(
        self,
        record: EventRecord,
        unless: Callable[[Sequence[EventRecord]], bool] | None = None,
    ) -> bool:
        """Insert ``record`` at the head and truncate to the cap.

        If ``unless`` is given it is evaluated against the current log
        inside the same locked cycle; a true result skips the write and
        returns False.
        """
        async with self._lock:
            entries = await self._read()
            if unless is not None and unless(entries):
                return False
            entries.insert(0, record)
            evicted = len(entries) - self.max_entries
            if evicted > 0:
                del entries[self.max_entries:]
                logger.debug("entries_evicted", count=evicted)
            await self._write(entries)
            return True

    async def replace_all(self, records: Sequence[EventRecord]) -> None:
        """Persist ``records`` as the whole log in a single write."""
        async with self._lock:
            await self._write(list(records)[: self.max_entries])

    async def retain(self, keep: Callable[[EventRecord], bool]) -> int:
        """Drop every record for which ``keep`` is false; return how many went.

        Skips the write when nothing is removed.
        """
        async with self._lock:
            entries = await self._read()
            kept = [entry for entry in entries if keep(entry)]
            removed = len(entries) - len(kept)
            if removed:
                await self._write(kept)
            return removed

    async def clear(self) -> None:
        """Remove the entire log record from the backend."""
        async with self._lock:
            await bounded(self._backend.remove(self._key), self._timeout, f"remove {self._key}")

    async def _read(self) -> list[EventRecord]:
        raw = await bounded(self._backend.get(self._key), self._timeout, f"read {self._key}")
        if raw is None:
            return []
        try:
            document = LogDocument.model_validate_json(raw)
        except ValidationError as exc:
            raise StorageFailure(f"Corrupt log document under {self._key}") from exc
        return document.entries

    async def _write(self, entries: list[EventRecord]) -> None:
        try:
            payload = LogDocument(entries=entries).model_dump_json()
        except PydanticSerializationError as exc:
            raise StorageFailure(f"Log document under {self._key} is not serializable") from exc
        await bounded(self._backend.set(self._key, payload), self._timeout, f"write {self._key}")
