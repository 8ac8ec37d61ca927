"""Command dispatcher: URI routing and synchronous reply validation."""

import json

import httpx
import pytest

from janus_session.dispatcher import CommandDispatcher, build_uri
from janus_session.errors import ProtocolMismatch, SessionError, TransactionMismatch, TransportError
from janus_session.transactions import TransactionRegistry
from janus_session.transport.http import HttpClient

BASE = "http://gateway.test/janus"


def make_dispatcher(handler):
    seen = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    registry = TransactionRegistry()
    http = HttpClient(transport=httpx.MockTransport(record))
    return CommandDispatcher(http, registry), registry, seen


def reply(janus="success", data=None, transaction=None):
    def handler(request):
        body = json.loads(request.content)
        return httpx.Response(200, json={
            "janus": janus,
            "transaction": transaction or body["transaction"],
            "data": data,
        })
    return handler


def test_build_uri():
    assert build_uri(BASE) == BASE
    assert build_uri(BASE, "S1") == f"{BASE}/S1"
    assert build_uri(BASE, "S1", "H1") == f"{BASE}/S1/H1"
    assert build_uri(BASE, None, "H1") == BASE


@pytest.mark.asyncio
async def test_create_posts_to_base_uri():
    dispatcher, _, seen = make_dispatcher(reply(data={"id": "S1"}))
    tx, data = await dispatcher.send(BASE, "create")
    assert data == {"id": "S1"}
    assert str(seen[0].url) == BASE
    body = json.loads(seen[0].content)
    assert body == {"janus": "create", "transaction": tx}
    assert seen[0].headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_routes_under_session_and_handle():
    dispatcher, _, seen = make_dispatcher(reply(janus="ack"))
    await dispatcher.send(BASE, "message", {"body": {}}, session_id="S1", path="H1", ok="ack")
    assert str(seen[0].url) == f"{BASE}/S1/H1"


@pytest.mark.asyncio
async def test_command_without_session_never_reaches_transport():
    dispatcher, registry, seen = make_dispatcher(reply())
    for command in ("attach", "message", "destroy"):
        with pytest.raises(SessionError):
            await dispatcher.send(BASE, command)
    assert seen == []
    assert registry.pending == 0


@pytest.mark.asyncio
async def test_unexpected_tag_is_protocol_mismatch():
    def handler(request):
        body = json.loads(request.content)
        return httpx.Response(200, json={
            "janus": "error", "transaction": body["transaction"],
            "error": {"code": 458, "reason": "No such session 123"},
        })

    dispatcher, _, _ = make_dispatcher(handler)
    with pytest.raises(ProtocolMismatch) as exc_info:
        await dispatcher.send(BASE, "attach", {"plugin": "janus.plugin.echotest"}, session_id="123")
    assert exc_info.value.tag == "error"
    assert exc_info.value.expected == "success"
    assert exc_info.value.reason == "No such session 123"


@pytest.mark.asyncio
async def test_success_when_ack_expected_is_mismatch():
    dispatcher, _, _ = make_dispatcher(reply(janus="success"))
    with pytest.raises(ProtocolMismatch) as exc_info:
        await dispatcher.send(BASE, "message", session_id="S1", path="H1", ok="ack")
    assert exc_info.value.tag == "success"


@pytest.mark.asyncio
async def test_transaction_mismatch():
    dispatcher, _, _ = make_dispatcher(reply(transaction="someone-else"))
    with pytest.raises(TransactionMismatch) as exc_info:
        await dispatcher.send(BASE, "create")
    assert exc_info.value.received == "someone-else"


@pytest.mark.asyncio
async def test_http_status_is_transport_error():
    dispatcher, _, _ = make_dispatcher(lambda request: httpx.Response(503, text="busy"))
    with pytest.raises(TransportError) as exc_info:
        await dispatcher.send(BASE, "create")
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_connection_failure_is_transport_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    dispatcher, _, _ = make_dispatcher(refuse)
    with pytest.raises(TransportError) as exc_info:
        await dispatcher.send(BASE, "create")
    assert isinstance(exc_info.value.cause, httpx.ConnectError)
    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_malformed_reply_is_transport_error():
    dispatcher, _, _ = make_dispatcher(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(TransportError):
        await dispatcher.send(BASE, "create")


@pytest.mark.asyncio
async def test_failure_rejects_preregistered_transaction():
    dispatcher, registry, _ = make_dispatcher(lambda request: httpx.Response(500))
    tx = registry.allocate()
    waiter = registry.register_wait(tx)
    with pytest.raises(TransportError):
        await dispatcher.send(BASE, "message", session_id="S1", path="H1", ok="ack", transaction=tx,
                              keep_pending=True)
    assert waiter.done()
    assert isinstance(waiter.exception(), TransportError)


@pytest.mark.asyncio
async def test_keep_pending_leaves_waiter_open():
    dispatcher, registry, seen = make_dispatcher(reply(janus="ack"))
    tx = registry.allocate()
    waiter = registry.register_wait(tx)
    returned, _ = await dispatcher.send(BASE, "message", session_id="S1", path="H1", ok="ack",
                                        transaction=tx, keep_pending=True)
    assert returned == tx
    assert json.loads(seen[0].content)["transaction"] == tx
    assert not waiter.done()
    assert registry.is_pending(tx)


@pytest.mark.asyncio
async def test_success_fulfils_preregistered_transaction():
    dispatcher, registry, _ = make_dispatcher(reply(data={"id": "H9"}))
    tx = registry.allocate()
    waiter = registry.register_wait(tx)
    await dispatcher.send(BASE, "attach", session_id="S1", transaction=tx)
    assert await waiter == {"id": "H9"}


@pytest.mark.asyncio
async def test_invalid_url_is_transport_error():
    def bad_url(request):
        raise httpx.InvalidURL("bad host")

    dispatcher, registry, _ = make_dispatcher(bad_url)
    tx = registry.allocate()
    waiter = registry.register_wait(tx)
    with pytest.raises(TransportError):
        await dispatcher.send(BASE, "create", transaction=tx)
    assert isinstance(waiter.exception(), TransportError)


@pytest.mark.asyncio
async def test_unexpected_exception_rejects_transaction():
    def broken(request):
        raise RuntimeError("transport bug")

    dispatcher, registry, _ = make_dispatcher(broken)
    tx = registry.allocate()
    waiter = registry.register_wait(tx)
    with pytest.raises(RuntimeError):
        await dispatcher.send(BASE, "message", session_id="S1", path="H1", ok="ack", transaction=tx,
                              keep_pending=True)
    assert isinstance(waiter.exception(), RuntimeError)
    assert registry.pending == 0
