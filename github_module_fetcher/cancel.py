"""Cooperative cancellation for downloads and extraction."""

import threading
import time

from .errors import CancelledError


class CancelToken:
    """Cancellation flag with an optional deadline.

    Long-running steps call ``check()`` between chunks; it raises
    ``CancelledError`` once ``cancel()`` was called or the deadline passed.
    """

    def __init__(self, timeout: float | None = None):
        self._event = threading.Event()
        self.deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def check(self, uri: str | None = None) -> None:
        if self._event.is_set():
            raise CancelledError("operation cancelled", uri=uri)
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise CancelledError("deadline exceeded", uri=uri)
