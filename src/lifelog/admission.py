"""Admission and deduplication of incoming activity events.

A single navigation usually fires both a history visit and a tab
completion for the same URL within a second or two. Any same-URL record
newer than ``now - window`` suppresses the incoming event, so normal
browsing is counted once.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from pydantic import ValidationError

from lifelog.exceptions import MalformedInput, StorageFailure
from lifelog.records import build_record
from lifelog.schemas import AdmissionResult, EventRecord, RawEvent
from lifelog.state import LoggingState
from lifelog.store import BoundedLogStore

logger = structlog.get_logger()

DEFAULT_DEDUP_WINDOW = timedelta(minutes=5)


def parse_raw_event(raw: RawEvent | dict[str, Any]) -> RawEvent:
    """Validate a raw event pushed by the event source."""
    if isinstance(raw, RawEvent):
        return raw
    try:
        return RawEvent.model_validate(raw)
    except ValidationError as exc:
        raise MalformedInput(f"Invalid raw event: {exc.error_count()} error(s)") from exc


def is_recent_duplicate(entries: Sequence[EventRecord], url: str, cutoff: datetime) -> bool:
    """True if any entry for ``url`` is strictly newer than ``cutoff``."""
    return any(entry.url == url and entry.timestamp > cutoff for entry in entries)


class AdmissionUnit:
    """Decides whether a raw event becomes a stored record."""

    def __init__(
        self,
        store: BoundedLogStore,
        state: LoggingState,
        dedup_window: timedelta = DEFAULT_DEDUP_WINDOW,
    ) -> None:
        self.store = store
        self.state = state
        self.dedup_window = dedup_window

    async def admit(self, raw: RawEvent | dict[str, Any], now: datetime | None = None) -> AdmissionResult:
        """Offer one raw event to the log.

        Never raises: malformed events come back as REJECTED and storage
        errors as FAILED, with the persisted log left as it was.
        """
        if not self.state.enabled:
            logger.debug("admission_disabled")
            return AdmissionResult.DISABLED

        try:
            event = parse_raw_event(raw)
        except MalformedInput:
            logger.warning("admission_rejected", exc_info=True)
            return AdmissionResult.REJECTED

        now = now or datetime.now(timezone.utc)
        record = build_record(event, now)
        cutoff = record.timestamp - self.dedup_window

        try:
            stored = await self.store.append(
                record,
                unless=lambda entries: is_recent_duplicate(entries, record.url, cutoff),
            )
        except StorageFailure:
            logger.error("admission_storage_failure", url=record.url, exc_info=True)
            return AdmissionResult.FAILED

        if not stored:
            logger.debug("admission_duplicate", url=record.url)
            return AdmissionResult.SKIPPED_DUPLICATE

        logger.info("entry_admitted", domain=record.domain, source=record.source.value, title=record.title)
        return AdmissionResult.ACCEPTED
