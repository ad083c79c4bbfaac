"""Cancellable waits for retry delays."""

from __future__ import annotations

import threading


class CancellationToken:
    """Thread-safe cancellation signal with an interruptible sleep.

    ``wait()`` blocks the calling thread for the retry delay and returns
    ``False`` as soon as ``cancel()`` is called from any thread.
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def reset(self) -> None:
        self._event.clear()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if the full delay elapsed."""
        if seconds <= 0:
            return not self._event.is_set()
        return not self._event.wait(seconds)


__all__ = ["CancellationToken"]
