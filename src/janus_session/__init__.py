"""
janus-session — Janus gateway session client for Python.

Long-poll HTTP client: sessions, transaction correlation and plugin handles.
"""

from janus_session.client import AsyncJanusSession, JanusSession, SessionState
from janus_session.config import SessionOptions
from janus_session.plugins import PluginHandle
from janus_session.models.envelope import PluginEvent
from janus_session.errors import (
    JanusError,
    TransportError,
    ProtocolMismatch,
    TransactionMismatch,
    SessionError,
    TransactionTimeout,
    PollError,
)

__version__ = "0.1.0"
__all__ = [
    "AsyncJanusSession",
    "JanusSession",
    "SessionState",
    "SessionOptions",
    "PluginHandle",
    "PluginEvent",
    "JanusError",
    "TransportError",
    "ProtocolMismatch",
    "TransactionMismatch",
    "SessionError",
    "TransactionTimeout",
    "PollError",
]
