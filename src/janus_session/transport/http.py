"""
HTTP transport for the gateway — JSON POSTs and long-poll GETs over httpx.
"""

from typing import Any, Optional

import httpx

from janus_session.errors import TransportError

USER_AGENT = "janus-session/0.1.0"


class HttpResponse:
    __slots__ = ("status_code", "content")

    def __init__(self, status_code: int, content: bytes):
        self.status_code = status_code
        self.content = content

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpClient:
    def __init__(
        self,
        timeout: float = 30.0,
        poll_timeout: Optional[float] = None,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._timeout = timeout
        self._poll_timeout = httpx.Timeout(timeout, read=poll_timeout)
        self._client = httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT, "Accept": "application/json", **(headers or {})},
            timeout=timeout,
            transport=transport,
        )

    async def post_json(self, uri: str, body: dict[str, Any]) -> HttpResponse:
        try:
            resp = await self._client.post(uri, json=body, headers={"Content-Type": "application/json"})
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"request failed: {e}", cause=e) from e
        return HttpResponse(resp.status_code, resp.content)

    async def get_body(self, uri: str, params: Optional[dict[str, Any]] = None) -> HttpResponse:
        """Stream a GET response and return it once the body has fully arrived.

        Cancelling the awaiting task aborts the request.
        """
        try:
            async with self._client.stream("GET", uri, params=params, timeout=self._poll_timeout) as resp:
                if resp.status_code < 200 or resp.status_code >= 300:
                    return HttpResponse(resp.status_code, b"")
                chunks = [chunk async for chunk in resp.aiter_bytes()]
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"poll request failed: {e}", cause=e) from e
        return HttpResponse(resp.status_code, b"".join(chunks))

    async def close(self) -> None:
        await self._client.aclose()
