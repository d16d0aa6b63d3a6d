"""Event log schema definitions.

A stored record looks like:
{
    "id": "0192a4c3b1f2-5d1e7a9c",
    "url": "https://example.com/page",
    "title": "Example",
    "timestamp": "2026-10-18T09:15:02.123456Z",
    "domain": "example.com",
    "source": "tab"
}

Records are persisted newest-first inside a versioned envelope so the
layout can evolve without guessing at the shape of old data.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = 1


class EventSource(str, Enum):
    """Provenance of a logged event. Informational only."""

    HISTORY = "history"  # backfilled navigation event
    TAB = "tab"  # live tab-completion event


class AdmissionResult(str, Enum):
    """Outcome of offering a raw event to the admission unit."""

    ACCEPTED = "accepted"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    DISABLED = "disabled"
    REJECTED = "rejected"  # malformed raw event, nothing stored
    FAILED = "failed"  # storage failure, prior state kept


class RawEvent(BaseModel):
    """An activity notification pushed by the event source."""

    url: str
    title: str | None = None
    source: EventSource

    @field_validator("url", "title")
    @classmethod
    def _utf8_encodable(cls, value: str | None) -> str | None:
        # Lone surrogates survive JSON decoding but cannot be persisted.
        if value is not None:
            try:
                value.encode("utf-8")
            except UnicodeEncodeError as exc:
                raise ValueError("text is not valid UTF-8") from exc
        return value


class EventRecord(BaseModel):
    """One logged activity occurrence. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    id: str
    url: str
    title: str | None = None
    timestamp: datetime
    domain: str
    source: EventSource


class LogDocument(BaseModel):
    """Persisted envelope for the ordered record sequence (newest first)."""

    schema_version: int = SCHEMA_VERSION
    entries: list[EventRecord] = Field(default_factory=list)


class StateDocument(BaseModel):
    """Persisted envelope for the logging toggle."""

    schema_version: int = SCHEMA_VERSION
    enabled: bool = True


class _WireModel(BaseModel):
    """Response models serialize with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DomainCount(_WireModel):
    """Frequency of one domain across the whole log."""

    domain: str
    count: int


class LogStats(_WireModel):
    """Aggregate statistics over the current log snapshot."""

    total_entries: int
    today_entries: int
    top_domains: list[DomainCount] = Field(default_factory=list)


class SweepResult(_WireModel):
    """Outcome of a retention sweep."""

    removed_count: int = 0
    failed: bool = False
