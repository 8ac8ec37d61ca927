"""
Janus session error types — one class per failure kind of the gateway protocol.
"""

from typing import Any, Optional


class JanusError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class TransportError(JanusError):
    """Non-2xx HTTP status or a connection-level failure."""

    def __init__(self, message: str, status_code: Optional[int] = None, cause: Optional[BaseException] = None):
        super().__init__("transport_error", message, {"status_code": status_code} if status_code else None)
        self.status_code = status_code
        self.cause = cause


class ProtocolMismatch(JanusError):
    """The gateway answered with a tag other than the one expected."""

    def __init__(self, tag: Optional[str], expected: str, reason: Optional[str] = None,
                 details: Optional[dict[str, Any]] = None):
        message = f"request failed: {tag}"
        if reason:
            message += f" ({reason})"
        super().__init__("protocol_mismatch", message, details)
        self.tag = tag
        self.expected = expected
        self.reason = reason


class TransactionMismatch(JanusError):
    def __init__(self, expected: str, received: Optional[str]):
        super().__init__("transaction_mismatch", f"request mismatch from janus: sent {expected}, got {received}")
        self.expected = expected
        self.received = received


class SessionError(JanusError):
    def __init__(self, message: str, code: str = "session_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class TransactionTimeout(JanusError):
    def __init__(self, transaction: str, timeout: float):
        super().__init__("transaction_timeout", f"no event for transaction {transaction} after {timeout}s")
        self.transaction = transaction


class PollError(JanusError):
    """A single long-poll cycle failed. Reported to error handlers, never raised to callers."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__("poll_error", message)
        self.cause = cause
