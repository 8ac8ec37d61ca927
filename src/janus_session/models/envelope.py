"""
Gateway envelopes — every message on the wire is a JSON object tagged by `janus`.
"""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class OutboundEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    janus: str  # command: create | attach | message | destroy
    transaction: str


class GatewayErrorInfo(BaseModel):
    code: Optional[int] = None
    reason: Optional[str] = None


class InboundEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    janus: Optional[str] = None  # "success" | "ack" | "event" | "error" | ...
    transaction: Optional[str] = None
    session_id: Optional[Any] = None
    sender: Optional[Any] = None
    data: Optional[Any] = None
    plugindata: Optional[dict[str, Any]] = None
    jsep: Optional[dict[str, Any]] = None
    error: Optional[GatewayErrorInfo] = None


class PluginEvent(BaseModel):
    """Final result of a plugin message: the unwrapped payload plus the envelope it came in."""

    data: Any = None
    envelope: dict[str, Any]

    @property
    def jsep(self) -> Optional[dict[str, Any]]:
        return self.envelope.get("jsep")
