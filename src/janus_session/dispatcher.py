"""
Command dispatcher — sends one correlated command and validates the synchronous reply.
"""

import logging
from typing import Any, Optional

from janus_session.errors import ProtocolMismatch, SessionError, TransactionMismatch, TransportError
from janus_session.transactions import TransactionRegistry
from janus_session.transport.envelope import build_envelope, decode_body, parse_envelope
from janus_session.transport.http import HttpClient

logger = logging.getLogger(__name__)

SESSIONLESS_COMMANDS = {"create"}


def build_uri(base_uri: str, session_id: Optional[str] = None, path: Optional[str] = None) -> str:
    uri = base_uri
    if session_id:
        uri += f"/{session_id}"
        if path:
            uri += f"/{path}"
    return uri


class CommandDispatcher:
    def __init__(self, http: HttpClient, registry: TransactionRegistry):
        self._http = http
        self._registry = registry

    async def send(
        self,
        base_uri: str,
        command: str,
        payload: Optional[dict[str, Any]] = None,
        *,
        session_id: Optional[str] = None,
        path: Optional[str] = None,
        ok: str = "success",
        transaction: Optional[str] = None,
        keep_pending: bool = False,
    ) -> tuple[str, Any]:
        """Send `command` and return `(transaction_id, reply.data)`.

        Pass a pre-allocated `transaction` to register an event waiter before
        the POST goes out. Any failure fulfils that transaction with the
        error; success fulfils it with the reply data unless `keep_pending`
        is set, in which case a later event on the poll channel completes it.
        """
        transaction = transaction or self._registry.allocate()
        try:
            data = await self._round_trip(base_uri, command, payload, session_id, path, ok, transaction)
        except Exception as e:
            self._registry.fulfill(transaction, error=e)
            raise
        if not keep_pending:
            self._registry.fulfill(transaction, result=data)
        return transaction, data

    async def _round_trip(
        self,
        base_uri: str,
        command: str,
        payload: Optional[dict[str, Any]],
        session_id: Optional[str],
        path: Optional[str],
        ok: str,
        transaction: str,
    ) -> Any:
        if not session_id and command not in SESSIONLESS_COMMANDS:
            raise SessionError(f"Cannot send '{command}' without a session. Call connect() first.",
                               code="not_connected")
        if not base_uri:
            raise SessionError(f"Cannot send '{command}' without a gateway URI.", code="not_connected")

        uri = build_uri(base_uri, session_id, path)
        envelope = build_envelope(command, transaction, payload)
        logger.debug("Sending %s (transaction %s) to %s", command, transaction, uri)
        resp = await self._http.post_json(uri, envelope)
        if not resp.ok:
            raise TransportError(f"request failed: {resp.status_code}", status_code=resp.status_code)

        try:
            body = parse_envelope(decode_body(resp.content))
        except ValueError as e:
            raise TransportError(f"invalid response body for {command}: {e}", status_code=resp.status_code,
                                 cause=e) from e
        if body is None:
            raise TransportError(f"invalid response body for {command}", status_code=resp.status_code)

        if body.janus != ok:
            reason = body.error.reason if body.error else None
            raise ProtocolMismatch(body.janus, ok, reason, details=body.model_dump(exclude_none=True))
        if body.transaction != transaction:
            raise TransactionMismatch(transaction, body.transaction)
        return body.data
