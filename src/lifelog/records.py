"""Event record construction: id generation and domain extraction."""

from __future__ import annotations

import secrets
from datetime import datetime, timezone
from urllib.parse import urlsplit

from lifelog.schemas import EventRecord, RawEvent

UNKNOWN_DOMAIN = "unknown"
HOST_REQUIRED_SCHEMES = frozenset({"http", "https", "ws", "wss", "ftp"})


def domain_of(url: str) -> str:
    """Return the hostname of ``url``, or ``"unknown"`` if it cannot be parsed.

    Total function: malformed addresses never block logging. An address
    needs a scheme to parse, and web schemes also need a host, so ``""``,
    ``"a.com"`` and ``"http://"`` map to the sentinel. Other schemes may
    legitimately have no host: ``"about:blank"`` and ``"file:///tmp/x"``
    give an empty domain.
    """
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except (ValueError, TypeError, AttributeError):
        return UNKNOWN_DOMAIN
    if not parts.scheme:
        return UNKNOWN_DOMAIN
    if not hostname:
        return UNKNOWN_DOMAIN if parts.scheme in HOST_REQUIRED_SCHEMES else ""
    return hostname


def generate_id(now: datetime | None = None) -> str:
    """Millisecond time prefix plus a random suffix."""
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    return f"{millis:012x}-{secrets.token_hex(6)}"


def aware(now: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def build_record(raw: RawEvent, now: datetime) -> EventRecord:
    """Create the stored record for an admitted raw event.

    The timestamp is the admission moment, stored in UTC.
    """
    now = aware(now)
    return EventRecord(
        id=generate_id(now),
        url=raw.url,
        title=raw.title or None,
        timestamp=now.astimezone(timezone.utc),
        domain=domain_of(raw.url),
        source=raw.source,
    )
