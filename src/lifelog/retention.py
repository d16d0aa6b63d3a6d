"""Age-based retention sweep."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog

from lifelog.exceptions import StorageFailure
from lifelog.records import aware
from lifelog.schemas import SweepResult
from lifelog.store import BoundedLogStore

logger = structlog.get_logger()

DEFAULT_RETENTION = timedelta(days=30)


class RetentionSweeper:
    """Removes records older than the retention threshold."""

    def __init__(self, store: BoundedLogStore, retention: timedelta = DEFAULT_RETENTION) -> None:
        self.store = store
        self.retention = retention

    async def sweep(self, now: datetime | None = None) -> SweepResult:
        """Keep only records with ``timestamp >= now - retention``.

        Never raises; a storage failure is logged and reported in the result.
        """
        now = aware(now or datetime.now(timezone.utc))
        threshold = now - self.retention
        try:
            removed = await self.store.retain(lambda entry: entry.timestamp >= threshold)
        except StorageFailure:
            logger.error("retention_sweep_failed", threshold=threshold.isoformat(), exc_info=True)
            return SweepResult(removed_count=0, failed=True)

        logger.info("retention_sweep_completed", removed=removed, threshold=threshold.isoformat())
        return SweepResult(removed_count=removed)
