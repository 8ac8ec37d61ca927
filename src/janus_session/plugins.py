"""
Plugin handles — per-plugin messaging scoped to a server-assigned handle id.

Plugin messages complete in two phases: the gateway first acks the POST,
then delivers the plugin's result as an `event` on the long-poll channel
carrying the same transaction id.
"""

from typing import TYPE_CHECKING, Any, Optional

from janus_session.models.envelope import PluginEvent

if TYPE_CHECKING:
    from janus_session.client import AsyncJanusSession

PLUGIN_PREFIX = "janus.plugin."


def expand_namespace(namespace: str) -> tuple[str, str]:
    """Return `(full_namespace, short_name)`; bare names get the standard prefix."""
    if "." not in namespace:
        namespace = PLUGIN_PREFIX + namespace
    return namespace, namespace.rsplit(".", 1)[-1]


def build_message_payload(body: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Split `jsep` out of a plugin message body.

    `jsep` travels beside `body` and is omitted entirely when absent.
    """
    dup_body = {k: v for k, v in (body or {}).items() if k != "jsep"}
    payload: dict[str, Any] = {"body": dup_body}
    if body and body.get("jsep") is not None:
        payload["jsep"] = body["jsep"]
    return payload


class PluginHandle:
    __slots__ = ("_session", "name", "namespace", "id")

    def __init__(self, session: "AsyncJanusSession", name: str, namespace: str, handle_id: str):
        self._session = session
        self.name = name
        self.namespace = namespace
        self.id = handle_id

    async def send(self, body: Optional[dict[str, Any]] = None, *, timeout: Optional[float] = None) -> PluginEvent:
        """Send a message to this plugin and wait for its event."""
        return await self._session.send_to_plugin(self.id, body, timeout=timeout)

    def __repr__(self) -> str:
        return f"PluginHandle(name={self.name!r}, id={self.id!r})"
