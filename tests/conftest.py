"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from lifelog.backends import MemoryBackend
from lifelog.config import Settings
from lifelog.exceptions import StorageFailure
from lifelog.schemas import EventRecord, EventSource
from lifelog.service import LifeLogService
from lifelog.store import BoundedLogStore

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


class FailingBackend(MemoryBackend):
    """Backend whose reads and/or writes fail on demand."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, key: str) -> str | None:
        if self.fail_reads:
            raise StorageFailure(f"read {key} failed")
        return await super().get(key)

    async def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StorageFailure(f"write {key} failed")
        await super().set(key, value)

    async def remove(self, key: str) -> None:
        if self.fail_writes:
            raise StorageFailure(f"remove {key} failed")
        await super().remove(key)


class SlowBackend(MemoryBackend):
    """Backend that never answers within a short timeout."""

    async def get(self, key: str) -> str | None:
        await asyncio.sleep(1)
        return await super().get(key)


def make_record(
    url: str = "https://example.com/",
    timestamp: datetime = NOW,
    domain: str | None = None,
    record_id: str | None = None,
    source: EventSource = EventSource.TAB,
) -> EventRecord:
    """Build a stored record directly, bypassing admission."""
    return EventRecord(
        id=record_id or f"{url}@{timestamp.isoformat()}",
        url=url,
        title=None,
        timestamp=timestamp,
        domain=domain or "example.com",
        source=source,
    )


@pytest.fixture
def settings() -> Settings:
    """In-memory settings, independent of the environment."""
    return Settings(backend="memory", log_format="console", _env_file=None)


@pytest.fixture
def backend() -> FailingBackend:
    return FailingBackend()


@pytest.fixture
def store(backend: FailingBackend) -> BoundedLogStore:
    return BoundedLogStore(backend, key="test:entries", max_entries=1000, timeout=1.0)


@pytest.fixture
def service(settings: Settings, backend: FailingBackend) -> LifeLogService:
    return LifeLogService(settings, backend=backend)
