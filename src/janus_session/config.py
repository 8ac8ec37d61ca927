"""
Session options — the only externally configured values besides the base URI.
"""

from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_POLL_INTERVAL = 0.5


class SessionOptions(BaseModel):
    poll_interval: float = Field(DEFAULT_POLL_INTERVAL, gt=0)  # seconds, backoff base after a failed cycle
    max_poll_backoff: float = Field(30.0, gt=0)
    request_timeout: float = Field(30.0, gt=0)
    poll_timeout: Optional[float] = None  # None: hold the long poll as long as the gateway does
    transaction_timeout: Optional[float] = None  # None: wait for plugin events indefinitely
    headers: dict[str, str] = Field(default_factory=dict)
