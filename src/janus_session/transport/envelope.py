"""
Envelope construction and parsing.
"""

import json
from typing import Any, Optional

from janus_session.models.envelope import InboundEnvelope, OutboundEnvelope


def build_envelope(command: str, transaction: str, payload: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Merge a command payload with its `janus` tag and transaction id.

    Fields whose value is None are left out of the serialized body.
    """
    fields = {k: v for k, v in (payload or {}).items() if v is not None}
    fields.update(janus=command, transaction=transaction)
    return OutboundEnvelope(**fields).model_dump()


def decode_body(content: bytes) -> Any:
    """Decode a complete response body. Raises ValueError on malformed JSON."""
    return json.loads(content.decode("utf-8"))


def parse_envelope(raw: Any) -> Optional[InboundEnvelope]:
    """Parse an inbound envelope. Returns None if invalid."""
    if not isinstance(raw, dict):
        return None
    try:
        return InboundEnvelope.model_validate(raw)
    except ValueError:
        return None


def unwrap_plugindata(envelope: InboundEnvelope) -> Any:
    """Return the innermost plugin payload of an event envelope.

    `plugindata.data.result` nests at most two levels; `jsep` from the
    envelope root is copied onto a dict payload when present.
    """
    data: Any = envelope.plugindata or {}
    if isinstance(data, dict) and data.get("data") is not None:
        data = data["data"]
    if isinstance(data, dict) and data.get("result") is not None:
        data = data["result"]
    if isinstance(data, dict):
        data = dict(data)
        if envelope.jsep is not None:
            data["jsep"] = envelope.jsep
    return data
