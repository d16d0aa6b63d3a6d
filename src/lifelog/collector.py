"""Life Log activity collector

Async Unix datagram listener that receives JSON messages from the
browser-side event source and from consumers, feeds activity events into
the event log, and answers requests.

Architecture:
  event source --[Unix DGRAM socket]--> ActivityCollector
                                          |-> admission -> bounded log store
  consumer     --[Unix DGRAM socket]--> ActivityCollector
                                          |-> request dispatch -> reply datagram
  DailyTicker (local midnight, then every 24h) -> retention sweep

Message shapes:
  {"source": "history", "url": "...", "title": "..."}
  {"source": "tab", "status": "complete", "url": "...", "title": "..."}
  {"action": "getStats"}  (any action understood by LifeLogService.handle)

Replies are only sent when the sender bound its own socket address.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import os
import signal
import socket
from datetime import timedelta
from pathlib import Path
from typing import Any

import structlog

from lifelog.config import Settings, get_settings
from lifelog.logging import setup_logging
from lifelog.scheduler import DailyTicker
from lifelog.schemas import AdmissionResult, EventSource
from lifelog.service import LifeLogService

logger = structlog.get_logger()


class ActivityCollector:
    """Socket front end and sweep scheduler around a LifeLogService."""

    def __init__(self, settings: Settings, service: LifeLogService | None = None) -> None:
        self.settings = settings
        self.service = service or LifeLogService(settings)
        self.ticker = DailyTicker(interval=timedelta(hours=settings.sweep_interval_hours))
        self.ticker.on_tick(self.service.sweep)
        self._sock: socket.socket | None = None
        self._running = False
        self._messages_received = 0
        self._messages_errors = 0
        self._receiver: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Connect storage, bind the socket, then serve until stopped."""
        logger.info("collector_starting")
        await self.service.start()
        self._bind_socket()
        self._running = True
        logger.info("collector_ready", socket_path=self.settings.socket_path)

        self._receiver = asyncio.create_task(self._receive_loop())
        try:
            await asyncio.gather(self._receiver, self.ticker.run())
        except asyncio.CancelledError:
            pass

    async def stop(self) -> None:
        """Gracefully stop the collector."""
        if not self._running and self._sock is None:
            return
        logger.info("collector_stopping")
        self._running = False
        self.ticker.stop()
        if self._receiver and not self._receiver.done():
            self._receiver.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._receiver

        if self._sock:
            self._sock.close()
            self._sock = None

        socket_path = Path(self.settings.socket_path)
        if socket_path.exists():
            socket_path.unlink()

        await self.service.close()
        logger.info(
            "collector_stopped",
            received=self._messages_received,
            errors=self._messages_errors,
        )

    def _bind_socket(self) -> None:
        """Create and bind the Unix datagram socket."""
        socket_path = Path(self.settings.socket_path)
        socket_path.parent.mkdir(parents=True, exist_ok=True)

        if socket_path.exists():
            socket_path.unlink()
            logger.debug("stale_socket_removed", path=str(socket_path))

        self._sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
        self._sock.bind(str(socket_path))
        self._sock.setblocking(False)

        # Let the event source write to it regardless of its user.
        os.chmod(str(socket_path), 0o666)

        logger.info("socket_bound", path=str(socket_path))

    async def _receive_loop(self) -> None:
        loop = asyncio.get_running_loop()

        while self._running:
            try:
                data, addr = await loop.sock_recvfrom(self._sock, self.settings.socket_buffer_size)  # type: ignore[arg-type]
            except asyncio.CancelledError:
                break
            except OSError as exc:
                if self._running:
                    logger.error("socket_error", error=str(exc))
                    await asyncio.sleep(0.1)
                continue

            if not data:
                continue
            self._messages_received += 1
            try:
                response = await self.handle_datagram(data)
                if response is not None and addr:
                    await self._reply(loop, response, addr)
            except asyncio.CancelledError:
                break
            except Exception:
                self._messages_errors += 1
                logger.exception("receive_loop_unexpected_error", size=len(data))

    async def _reply(self, loop: asyncio.AbstractEventLoop, response: dict[str, Any], addr: str) -> None:
        payload = json.dumps(response).encode("utf-8")
        try:
            await loop.sock_sendto(self._sock, payload, addr)  # type: ignore[arg-type]
        except OSError as exc:
            logger.warning("reply_failed", addr=addr, error=str(exc))

    async def handle_datagram(self, data: bytes) -> dict[str, Any] | None:
        """Decode one datagram and route it. Returns a reply for requests."""
        try:
            message = json.loads(data.decode("utf-8"))
        except (ValueError, RecursionError) as exc:
            # JSONDecodeError and UnicodeDecodeError are ValueErrors; so are
            # oversized integer literals. Deep nesting hits the recursion limit.
            self._messages_errors += 1
            logger.warning("datagram_decode_failed", size=len(data), error=type(exc).__name__)
            return None

        if not isinstance(message, dict):
            self._messages_errors += 1
            logger.warning("datagram_not_an_object", kind=type(message).__name__)
            return None

        if "action" in message:
            return await self.service.handle(message)

        result = await self.handle_event(message)
        if result in (AdmissionResult.REJECTED, AdmissionResult.FAILED):
            self._messages_errors += 1
        return None

    async def handle_event(self, message: dict[str, Any]) -> AdmissionResult | None:
        """Route an activity event to the matching adapter."""
        source = message.get("source")
        if source == EventSource.HISTORY.value:
            return await self.service.on_history_visit(message)
        if source == EventSource.TAB.value:
            return await self.service.on_tab_updated({"status": message.get("status")}, message)
        logger.warning("unknown_event_source", source=source)
        return AdmissionResult.REJECTED

    @property
    def stats(self) -> dict[str, int]:
        return {
            "received": self._messages_received,
            "errors": self._messages_errors,
        }


async def main() -> None:
    """Entry point for the activity collector."""
    settings = get_settings()
    setup_logging(settings)

    collector = ActivityCollector(settings)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(collector.stop()))

    try:
        await collector.start()
    except KeyboardInterrupt:
        pass
    finally:
        await collector.stop()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
