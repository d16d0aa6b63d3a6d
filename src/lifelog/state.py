"""Process-wide logging toggle, persisted next to the log."""

from __future__ import annotations

import asyncio

import structlog
from pydantic import ValidationError

from lifelog.backends.base import StorageBackend
from lifelog.exceptions import StorageFailure
from lifelog.schemas import StateDocument
from lifelog.store import bounded

logger = structlog.get_logger()


class LoggingState:
    """Explicit enabled/disabled flag read by the admission unit.

    Defaults to enabled until a persisted value says otherwise.
    """

    def __init__(self, backend: StorageBackend, key: str = "lifelog:state", timeout: float = 5.0) -> None:
        self._backend = backend
        self._key = key
        self._timeout = timeout
        self._enabled = True
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def load(self) -> bool:
        """Read the persisted flag. A missing record means enabled."""
        raw = await bounded(self._backend.get(self._key), self._timeout, f"read {self._key}")
        if raw is None:
            self._enabled = True
        else:
            try:
                self._enabled = StateDocument.model_validate_json(raw).enabled
            except ValidationError as exc:
                raise StorageFailure(f"Corrupt state document under {self._key}") from exc
        logger.info("logging_state_loaded", enabled=self._enabled)
        return self._enabled

    async def set_enabled(self, enabled: bool) -> bool:
        """Persist the new flag, then adopt it. Returns the new value."""
        async with self._lock:
            payload = StateDocument(enabled=enabled).model_dump_json()
            await bounded(self._backend.set(self._key, payload), self._timeout, f"write {self._key}")
            self._enabled = enabled
        logger.info("logging_toggled", enabled=enabled)
        return enabled
