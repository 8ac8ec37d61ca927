"""
Transaction registry — correlates outbound requests with their late results.

Every outbound envelope carries a client-generated transaction id. Results
arrive either on the request's own HTTP response or, for two-phase plugin
messages, later on the long-poll channel. Each pending id maps to exactly
one single-shot future; the first fulfil wins and later ones are no-ops.
"""

import asyncio
import logging
import uuid
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[Any, Optional[BaseException]], None]


class _Pending:
    __slots__ = ("future", "on_complete")

    def __init__(self, future: "asyncio.Future[Any]", on_complete: Optional[CompletionCallback]):
        self.future = future
        self.on_complete = on_complete


class TransactionRegistry:
    def __init__(self) -> None:
        self._pending: dict[str, _Pending] = {}

    @staticmethod
    def allocate() -> str:
        return str(uuid.uuid4())

    @property
    def pending(self) -> int:
        return len(self._pending)

    def is_pending(self, transaction: str) -> bool:
        return transaction in self._pending

    def register_wait(
        self, transaction: str, on_complete: Optional[CompletionCallback] = None,
    ) -> "asyncio.Future[Any]":
        """Register the single continuation for `transaction` and return its future."""
        if transaction in self._pending:
            raise ValueError(f"transaction {transaction} already has a pending completion")
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[transaction] = _Pending(future, on_complete)
        return future

    def fulfill(self, transaction: str, result: Any = None, error: Optional[BaseException] = None) -> bool:
        """Complete a pending transaction with a result or an error.

        Returns False without side effects if the id is unknown or was
        already fulfilled.
        """
        entry = self._pending.pop(transaction, None)
        if entry is None:
            return False
        if not entry.future.done():
            if error is not None:
                entry.future.set_exception(error)
            else:
                entry.future.set_result(result)
        if entry.on_complete is not None:
            try:
                entry.on_complete(result, error)
            except Exception:
                logger.exception("Completion callback failed for transaction %s", transaction)
        return True

    def discard(self, transaction: str) -> None:
        """Forget a transaction without completing it (the caller gave up)."""
        entry = self._pending.pop(transaction, None)
        if entry is not None and not entry.future.done():
            entry.future.cancel()

    def fail_all(self, error: BaseException) -> int:
        """Reject every pending transaction, e.g. when the session goes away."""
        count = 0
        for transaction in list(self._pending):
            if self.fulfill(transaction, error=error):
                count += 1
        return count
