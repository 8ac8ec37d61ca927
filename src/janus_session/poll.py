"""
Long-poll loop — the session's only channel for asynchronous gateway messages.

One GET is in flight at a time. Each response is decoded only after the
body has fully arrived, classified, routed, and then the next GET is
issued. Failed cycles are reported and retried with backoff; the loop
only ends when the session stops it.
"""

import asyncio
import enum
import logging
import time
from typing import Any, Callable, Optional

from janus_session.errors import JanusError, PollError, ProtocolMismatch, SessionError
from janus_session.models.envelope import InboundEnvelope, PluginEvent
from janus_session.transactions import TransactionRegistry
from janus_session.transport.envelope import decode_body, parse_envelope, unwrap_plugindata
from janus_session.transport.http import HttpClient

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, dict[str, Any]], None]
ErrorHandler = Callable[[JanusError], None]


class PollState(str, enum.Enum):
    IDLE = "idle"
    POLLING = "polling"
    STOPPED = "stopped"


class LongPollLoop:
    def __init__(
        self,
        http: HttpClient,
        registry: TransactionRegistry,
        poll_interval: float = 0.5,
        max_backoff: float = 30.0,
    ):
        self._http = http
        self._registry = registry
        self._poll_interval = poll_interval
        self._max_backoff = max_backoff
        self._task: Optional[asyncio.Task[None]] = None
        self._running = False
        self._last_rid = 0
        self._event_handlers: list[EventHandler] = []
        self._error_handlers: list[ErrorHandler] = []
        self.state = PollState.IDLE
        self.cycles = 0

    @property
    def running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    def add_event_handler(self, handler: EventHandler) -> Callable[[], None]:
        """Add a handler for every correlated envelope. Returns a cleanup function."""
        self._event_handlers.append(handler)
        def remove() -> None:
            try:
                self._event_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    def add_error_handler(self, handler: ErrorHandler) -> Callable[[], None]:
        """Add a handler for poll-cycle failures. Returns a cleanup function."""
        self._error_handlers.append(handler)
        def remove() -> None:
            try:
                self._error_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    def start(self, base_uri: str, session_id: Optional[str]) -> None:
        if not session_id:
            raise SessionError("Cannot poll without a session id", code="not_connected")
        if self.running:
            return
        self._running = True
        self.state = PollState.POLLING
        self._task = asyncio.get_running_loop().create_task(self._run(f"{base_uri}/{session_id}"))

    async def stop(self) -> None:
        """Stop polling and abort the in-flight request. No further cycle is issued."""
        self._running = False
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.state = PollState.STOPPED

    def _next_rid(self) -> int:
        rid = max(int(time.time() * 1000), self._last_rid + 1)
        self._last_rid = rid
        return rid

    async def _run(self, uri: str) -> None:
        delay = self._poll_interval
        while self._running:
            try:
                await self._cycle(uri)
            except Exception as e:
                self._report(e if isinstance(e, JanusError) else PollError(f"poll cycle failed: {e}", cause=e))
                await asyncio.sleep(delay)
                delay = min(delay * 2, self._max_backoff)
            else:
                delay = self._poll_interval

    async def _cycle(self, uri: str) -> None:
        self.cycles += 1
        resp = await self._http.get_body(uri, params={"rid": self._next_rid()})
        if not resp.ok:
            raise PollError(f"request failed: {resp.status_code}")
        try:
            raw = decode_body(resp.content)
        except ValueError as e:
            raise PollError(f"malformed poll response: {e}", cause=e) from e
        envelope = parse_envelope(raw)
        if envelope is None:
            raise PollError(f"unexpected poll response: {str(raw)[:200]}")
        self.classify(envelope)

    def classify(self, envelope: InboundEnvelope) -> None:
        """Route one inbound envelope to its waiting transaction and to event handlers."""
        if not envelope.transaction:
            logger.debug("Dropping uncorrelated %s envelope", envelope.janus)
            return

        raw = envelope.model_dump(exclude_none=True)
        if envelope.janus == "event":
            event = PluginEvent(data=unwrap_plugindata(envelope), envelope=raw)
            self._registry.fulfill(envelope.transaction, result=event)
        elif envelope.janus == "error":
            reason = envelope.error.reason if envelope.error else None
            self._registry.fulfill(
                envelope.transaction, error=ProtocolMismatch("error", "event", reason, details=raw),
            )

        for handler in list(self._event_handlers):
            try:
                handler(envelope.janus or "", raw)
            except Exception:
                logger.exception("Event handler failed for %s envelope", envelope.janus)

    def _report(self, error: JanusError) -> None:
        logger.warning("Poll cycle failed: %s", error)
        for handler in list(self._error_handlers):
            try:
                handler(error)
            except Exception:
                logger.exception("Error handler failed")
