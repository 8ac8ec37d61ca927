"""
AsyncJanusSession / JanusSession — gateway session clients.

A session owns one base URI, one gateway-assigned session id, one
long-poll loop and one transaction registry. Every command of the
session and of its plugin handles shares them.
"""

import asyncio
import enum
import logging
from typing import Any, Callable, Optional

from janus_session.config import SessionOptions
from janus_session.dispatcher import CommandDispatcher
from janus_session.errors import JanusError, ProtocolMismatch, SessionError, TransactionTimeout
from janus_session.models.envelope import PluginEvent
from janus_session.plugins import PluginHandle, build_message_payload, expand_namespace
from janus_session.poll import ErrorHandler, EventHandler, LongPollLoop
from janus_session.transactions import TransactionRegistry
from janus_session.transport.http import HttpClient

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


class AsyncJanusSession:
    """Async gateway session (primary)."""

    def __init__(
        self,
        options: Optional[SessionOptions] = None,
        *,
        http: Optional[HttpClient] = None,
        **overrides: Any,
    ):
        if options is None:
            options = SessionOptions(**overrides)
        elif overrides:
            options = options.model_copy(update=overrides)
        self.options = options
        self.http = http or HttpClient(
            timeout=options.request_timeout,
            poll_timeout=options.poll_timeout,
            headers=options.headers,
        )
        self.transactions = TransactionRegistry()
        self._dispatcher = CommandDispatcher(self.http, self.transactions)
        self._poll = LongPollLoop(
            self.http,
            self.transactions,
            poll_interval=options.poll_interval,
            max_backoff=options.max_poll_backoff,
        )
        self._id: Optional[str] = None
        self.uri: Optional[str] = None
        self.state = SessionState.DISCONNECTED
        self.plugins: dict[str, PluginHandle] = {}

    @property
    def id(self) -> Optional[str]:
        return self._id

    @property
    def connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    @property
    def polling(self) -> bool:
        return self._poll.running

    @property
    def plugin_handles(self) -> dict[str, str]:
        return {name: handle.id for name, handle in self.plugins.items()}

    def add_event_handler(self, handler: EventHandler) -> Callable[[], None]:
        """Receive every correlated envelope from the poll channel as `handler(tag, envelope)`."""
        return self._poll.add_event_handler(handler)

    def add_error_handler(self, handler: ErrorHandler) -> Callable[[], None]:
        """Receive poll-cycle failures. Polling continues after each one."""
        return self._poll.add_error_handler(handler)

    async def connect(self, uri: str) -> None:
        """Create a gateway session at `uri` and start polling it."""
        if self.state is not SessionState.DISCONNECTED:
            raise SessionError(f"Cannot connect while {self.state.value}", code="invalid_state")
        self.uri = uri.rstrip("/")
        self.state = SessionState.CONNECTING
        try:
            _, data = await self._command("create")
            session_id = data.get("id") if isinstance(data, dict) else None
            if session_id is None:
                raise ProtocolMismatch("success", "success", "create reply carried no session id")
        except BaseException:
            self.state = SessionState.DISCONNECTED
            raise

        self._id = str(session_id)
        self.state = SessionState.CONNECTED
        self._poll.start(self.uri, self._id)
        logger.debug("Connected session %s at %s", self._id, self.uri)

    async def disconnect(self) -> None:
        """Destroy the gateway session and stop polling.

        If the gateway refuses, the session stays connected and keeps polling.
        """
        self._ensure_connected()
        self.state = SessionState.DISCONNECTING
        try:
            await self._command("destroy")
        except BaseException:
            self.state = SessionState.CONNECTED
            raise

        await self._teardown("Session disconnected")

    async def activate(self, namespace: str) -> str:
        """Attach to a plugin by short name (`streaming`) or namespace (`janus.plugin.streaming`).

        Returns the handle id; the handle is then available as `plugins[short_name]`.
        """
        self._ensure_connected()
        namespace, name = expand_namespace(namespace)
        _, data = await self._command("attach", {"plugin": namespace})
        handle_id = data.get("id") if isinstance(data, dict) else None
        if handle_id is None:
            raise ProtocolMismatch("success", "success", f"attach to {namespace} returned no handle id")

        self.plugins[name] = PluginHandle(self, name, namespace, str(handle_id))
        return str(handle_id)

    def plugin(self, name: str) -> PluginHandle:
        try:
            return self.plugins[name]
        except KeyError:
            raise SessionError(f"Plugin '{name}' is not active. Call activate() first.",
                               code="plugin_not_active") from None

    async def send_to_plugin(
        self, handle_id: str, body: Optional[dict[str, Any]] = None, *, timeout: Optional[float] = None,
    ) -> PluginEvent:
        """Send a plugin message and wait for the event that completes it.

        The gateway acks the POST first; the plugin's answer arrives later
        on the poll channel under the same transaction id.
        """
        self._ensure_connected()
        if timeout is None:
            timeout = self.options.transaction_timeout
        transaction = self.transactions.allocate()
        waiter = self.transactions.register_wait(transaction)

        try:
            await self._command(
                "message", build_message_payload(body),
                path=str(handle_id), ok="ack", transaction=transaction, keep_pending=True,
            )
        except Exception:
            # the dispatcher already rejected the waiter with this error
            if waiter.done() and not waiter.cancelled():
                waiter.exception()
            self.transactions.discard(transaction)
            raise
        except BaseException:
            self.transactions.discard(transaction)
            raise

        try:
            if timeout is None:
                return await waiter
            return await asyncio.wait_for(waiter, timeout)
        except asyncio.TimeoutError:
            self.transactions.discard(transaction)
            raise TransactionTimeout(transaction, timeout) from None
        except asyncio.CancelledError:
            self.transactions.discard(transaction)
            raise

    async def close(self) -> None:
        """Disconnect if needed and release the HTTP client."""
        if self.connected:
            try:
                await self.disconnect()
            except JanusError as e:
                logger.warning("Failed to destroy session %s on close: %s", self._id, e)
                await self._teardown("Session closed")
        await self._poll.stop()
        await self.http.close()

    async def _teardown(self, reason: str) -> None:
        """Stop polling, reject pending transactions and forget the session id."""
        await self._poll.stop()
        abandoned = self.transactions.fail_all(SessionError(reason, code="session_closed"))
        if abandoned:
            logger.debug("Abandoned %d pending transaction(s): %s", abandoned, reason)
        logger.debug("Session %s torn down: %s", self._id, reason)
        self._id = None
        self.plugins = {}
        self.state = SessionState.DISCONNECTED

    async def __aenter__(self) -> "AsyncJanusSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _command(self, command: str, payload: Optional[dict[str, Any]] = None, **kwargs: Any) -> tuple[str, Any]:
        return await self._dispatcher.send(self.uri or "", command, payload, session_id=self._id, **kwargs)

    def _ensure_connected(self) -> None:
        if self.state is not SessionState.CONNECTED or not self._id:
            raise SessionError("Not connected. Call connect() first.", code="not_connected")


class JanusSession:
    """Sync wrapper around AsyncJanusSession. Runs the event loop internally.

    The poll loop only makes progress while a call is in flight.
    """

    def __init__(self, options: Optional[SessionOptions] = None, **kwargs: Any):
        self._loop = asyncio.new_event_loop()
        self._async = AsyncJanusSession(options, **kwargs)

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    @property
    def id(self) -> Optional[str]:
        return self._async.id

    @property
    def state(self) -> SessionState:
        return self._async.state

    @property
    def connected(self) -> bool:
        return self._async.connected

    @property
    def plugins(self) -> dict[str, PluginHandle]:
        return self._async.plugins

    @property
    def plugin_handles(self) -> dict[str, str]:
        return self._async.plugin_handles

    def connect(self, uri: str) -> None:
        self._run(self._async.connect(uri))

    def disconnect(self) -> None:
        self._run(self._async.disconnect())

    def activate(self, namespace: str) -> str:
        return self._run(self._async.activate(namespace))

    def send(self, plugin: str, body: Optional[dict[str, Any]] = None, timeout: Optional[float] = None) -> PluginEvent:
        """Send a message to an activated plugin by short name and wait for its event."""
        return self._run(self._async.plugin(plugin).send(body, timeout=timeout))

    def close(self) -> None:
        self._run(self._async.close())
        self._loop.close()
