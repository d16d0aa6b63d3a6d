"""Read-only queries over the current log snapshot."""

from __future__ import annotations

import csv
import io
from collections import Counter
from collections.abc import Sequence
from datetime import datetime

from lifelog.records import aware
from lifelog.schemas import DomainCount, EventRecord, LogStats
from lifelog.store import BoundedLogStore

EXPORT_COLUMNS = ("title", "url", "domain", "timestamp")


def start_of_day(now: datetime) -> datetime:
    """Midnight at the start of ``now``'s calendar day, in ``now``'s timezone."""
    return aware(now).replace(hour=0, minute=0, second=0, microsecond=0)


def top_domains(entries: Sequence[EventRecord], limit: int = 5) -> list[DomainCount]:
    """Most frequent domains, ties in first-encountered order."""
    counts = Counter(entry.domain for entry in entries)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [DomainCount(domain=domain, count=count) for domain, count in ranked[:limit]]


def compute_stats(entries: Sequence[EventRecord], now: datetime, top_limit: int = 5) -> LogStats:
    """Stats for one log snapshot; ``now`` fixes which day counts as today."""
    midnight = start_of_day(now)
    return LogStats(
        total_entries=len(entries),
        today_entries=sum(1 for entry in entries if entry.timestamp >= midnight),
        top_domains=top_domains(entries, top_limit) if top_limit > 0 else [],
    )


def render_csv(entries: Sequence[EventRecord]) -> str:
    """Entries as CSV text with a header row."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for entry in entries:
        writer.writerow([entry.title or "", entry.url, entry.domain, entry.timestamp.isoformat()])
    return buf.getvalue()


class QueryService:
    """Serves recent-N and aggregate queries. No side effects."""

    def __init__(self, store: BoundedLogStore, top_domains_limit: int = 5) -> None:
        self.store = store
        self.top_domains_limit = top_domains_limit

    async def recent(self, limit: int) -> list[EventRecord]:
        """Newest ``limit`` records; ``limit <= 0`` gives an empty list."""
        if limit <= 0:
            return []
        entries = await self.store.load_all()
        return entries[:limit]

    async def stats(self, now: datetime | None = None) -> LogStats:
        """Total count, count since local midnight of ``now``, top domains."""
        now = now or datetime.now().astimezone()
        entries = await self.store.load_all()
        return compute_stats(entries, now, self.top_domains_limit)

    async def unique_domains(self) -> int:
        """Number of distinct domains across the whole log."""
        entries = await self.store.load_all()
        return len({entry.domain for entry in entries})

    async def export_csv(self) -> str:
        """Every record, newest first, as CSV text."""
        entries = await self.store.load_all()
        return render_csv(entries)
