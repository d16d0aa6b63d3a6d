"""Life Log service: wires storage, admission, retention and queries.

Also the request surface consumers talk to. Requests are plain dicts
keyed by ``action``; every response carries ``success`` and, on failure,
an ``error`` string instead of raising into the consumer.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

import structlog

from lifelog.admission import AdmissionUnit
from lifelog.backends import StorageBackend, create_backend
from lifelog.config import Settings
from lifelog.exceptions import LifeLogError, MalformedInput
from lifelog.queries import QueryService
from lifelog.retention import RetentionSweeper
from lifelog.schemas import AdmissionResult, EventSource, SweepResult
from lifelog.state import LoggingState
from lifelog.store import BoundedLogStore

logger = structlog.get_logger()

Handler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


class LifeLogService:
    """Single logical writer over the event log and the logging toggle."""

    def __init__(self, settings: Settings, backend: StorageBackend | None = None) -> None:
        self.settings = settings
        self.backend = backend or create_backend(settings)
        timeout = settings.storage_timeout_seconds

        self.store = BoundedLogStore(
            self.backend,
            key=settings.entries_key,
            max_entries=settings.max_entries,
            timeout=timeout,
        )
        self.state = LoggingState(self.backend, key=settings.state_key, timeout=timeout)
        self.admission = AdmissionUnit(
            self.store,
            self.state,
            dedup_window=timedelta(seconds=settings.dedup_window_seconds),
        )
        self.sweeper = RetentionSweeper(self.store, retention=timedelta(days=settings.retention_days))
        self.queries = QueryService(self.store, top_domains_limit=settings.top_domains_limit)

        self._handlers: dict[str, Handler] = {
            "getStats": self._get_stats,
            "getRecentEntries": self._get_recent_entries,
            "toggleLogging": self._toggle_logging,
            "getLoggingStatus": self._get_logging_status,
            "clearAll": self._clear_all,
            "exportCsv": self._export_csv,
            "getUniqueDomains": self._get_unique_domains,
        }

    async def start(self) -> None:
        """Connect the backend and load the persisted toggle."""
        await self.backend.connect()
        try:
            await self.state.load()
        except LifeLogError:
            # Keep the enabled default; the next toggle rewrites the record.
            logger.error("logging_state_load_failed", exc_info=True)

    async def close(self) -> None:
        """Release the backend connection."""
        await self.backend.close()

    # --- Event source adapters ---

    async def on_history_visit(self, item: dict[str, Any], now: datetime | None = None) -> AdmissionResult:
        """A page visit reported by browser history."""
        return await self.admission.admit(
            {"url": item.get("url"), "title": item.get("title"), "source": EventSource.HISTORY},
            now=now,
        )

    async def on_tab_updated(
        self,
        change_info: dict[str, Any],
        tab: dict[str, Any],
        now: datetime | None = None,
    ) -> AdmissionResult | None:
        """A tab update; only completed loads with a URL are logged."""
        if change_info.get("status") != "complete" or not tab.get("url"):
            return None
        return await self.admission.admit(
            {"url": tab["url"], "title": tab.get("title"), "source": EventSource.TAB},
            now=now,
        )

    # --- Timer trigger ---

    async def sweep(self, now: datetime | None = None) -> SweepResult:
        """Run one retention sweep; bound to the daily ticker by the collector."""
        return await self.sweeper.sweep(now)

    # --- Request surface ---

    async def handle(self, request: dict[str, Any]) -> dict[str, Any]:
        """Dispatch one consumer request by its ``action`` key."""
        action = request.get("action")
        handler = self._handlers.get(action) if isinstance(action, str) else None
        if handler is None:
            logger.warning("unknown_action", action=action)
            return {"success": False, "error": f"Unknown action: {action}"}

        try:
            return await handler(request)
        except MalformedInput as exc:
            logger.warning("malformed_request", action=action, error=str(exc))
            return {"success": False, "error": str(exc)}
        except LifeLogError as exc:
            logger.error("request_failed", action=action, exc_info=True)
            return {"success": False, "error": str(exc)}

    async def _get_stats(self, request: dict[str, Any]) -> dict[str, Any]:
        stats = await self.queries.stats()
        return {"success": True, "data": stats.model_dump(by_alias=True)}

    async def _get_recent_entries(self, request: dict[str, Any]) -> dict[str, Any]:
        limit = request.get("limit")
        if limit is None:
            limit = self.settings.default_recent_limit
        if isinstance(limit, bool) or not isinstance(limit, int):
            msg = f"limit must be an integer, got {limit!r}"
            raise MalformedInput(msg)
        entries = await self.queries.recent(limit)
        return {"success": True, "data": [entry.model_dump(mode="json") for entry in entries]}

    async def _toggle_logging(self, request: dict[str, Any]) -> dict[str, Any]:
        enabled = request.get("enabled")
        if not isinstance(enabled, bool):
            msg = f"enabled must be a boolean, got {enabled!r}"
            raise MalformedInput(msg)
        return {"success": True, "enabled": await self.state.set_enabled(enabled)}

    async def _get_logging_status(self, request: dict[str, Any]) -> dict[str, Any]:
        return {"success": True, "enabled": self.state.enabled}

    async def _clear_all(self, request: dict[str, Any]) -> dict[str, Any]:
        await self.store.clear()
        logger.info("log_cleared")
        return {"success": True}

    async def _export_csv(self, request: dict[str, Any]) -> dict[str, Any]:
        return {"success": True, "data": await self.queries.export_csv()}

    async def _get_unique_domains(self, request: dict[str, Any]) -> dict[str, Any]:
        return {"success": True, "count": await self.queries.unique_domains()}
