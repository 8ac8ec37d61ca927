"""Fake Janus gateway served through httpx.MockTransport."""

import asyncio
import json
from typing import Any, Callable, Optional

import httpx
import pytest
import pytest_asyncio

from janus_session import AsyncJanusSession
from janus_session.transport.http import HttpClient

BASE_URL = "http://gateway.test/janus"


class FakeGateway:
    """Answers session commands and serves queued envelopes to long polls."""

    def __init__(self, session_id: str = "S1", handle_id: str = "H1"):
        self.session_id = session_id
        self.handle_id = handle_id
        self.posts: list[tuple[str, dict[str, Any]]] = []
        self.polls: list[httpx.Request] = []
        self.overrides: dict[str, Callable[[dict[str, Any]], httpx.Response]] = {}
        self.plugin_event: Callable[[dict[str, Any]], Optional[dict[str, Any]]] = self.echo_event
        self._queue: Optional[asyncio.Queue] = None

    @property
    def queue(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue()
        return self._queue

    def push(self, item: Any) -> None:
        """Queue an envelope dict (or a raw httpx.Response) for the next poll."""
        self.queue.put_nowait(item)

    @staticmethod
    def echo_event(message: dict[str, Any]) -> Optional[dict[str, Any]]:
        return {
            "janus": "event",
            "transaction": message["transaction"],
            "plugindata": {"plugin": "janus.plugin.echotest", "data": {"result": {"echo": message["body"]}}},
        }

    def commands(self) -> list[str]:
        return [body["janus"] for _, body in self.posts]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            self.polls.append(request)
            item = await self.queue.get()
            if isinstance(item, httpx.Response):
                return item
            return httpx.Response(200, json=item)

        body = json.loads(request.content)
        self.posts.append((str(request.url), body))
        command = body["janus"]
        if command in self.overrides:
            return self.overrides[command](body)

        tx = body["transaction"]
        if command == "create":
            return httpx.Response(200, json={"janus": "success", "transaction": tx, "data": {"id": self.session_id}})
        if command == "attach":
            return httpx.Response(200, json={"janus": "success", "transaction": tx, "data": {"id": self.handle_id}})
        if command == "destroy":
            return httpx.Response(200, json={"janus": "success", "transaction": tx})
        if command == "message":
            event = self.plugin_event(body)
            if event is not None:
                self.push(event)
            return httpx.Response(200, json={"janus": "ack", "transaction": tx})
        return httpx.Response(200, json={"janus": "error", "transaction": tx,
                                         "error": {"code": 453, "reason": f"Unknown request '{command}'"}})


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest_asyncio.fixture
async def session(gateway):
    http = HttpClient(transport=httpx.MockTransport(gateway.handler))
    s = AsyncJanusSession(http=http, poll_interval=0.01, max_poll_backoff=0.05)
    yield s
    await s.close()


@pytest_asyncio.fixture
async def connected(session):
    await session.connect(BASE_URL)
    return session
