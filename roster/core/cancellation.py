"""Cooperative cancellation for long-running plan execution.

The executor polls the token *between* actions only.  A merge or delete
that has started always runs to completion before the request is honoured.
"""
from __future__ import annotations

import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager


class CancellationToken:
    """Thread-safe flag set by whoever wants the run to stop."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@contextmanager
def cancel_on_sigint(token: CancellationToken) -> Iterator[CancellationToken]:
    """Route SIGINT to *token* for the duration of the block.

    The previous handler is restored on exit.
    """
    def _handler(signum, frame):
        token.cancel("SIGINT received")

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)
