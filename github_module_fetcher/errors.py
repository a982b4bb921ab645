"""Error types and the shared error log."""

import threading


class FetchError(Exception):
    """Base class for failures recorded while fetching or installing a module.

    ``uri`` is the request the failure belongs to, if any. ``fatal`` is False
    only for failures that leave the operation's result intact.
    """

    fatal = True

    def __init__(self, message: str, uri: str | None = None):
        super().__init__(message)
        self.message = message
        self.uri = uri

    def __str__(self) -> str:
        if self.uri:
            return f"{self.uri}: {self.message}"
        return self.message


class TransportError(FetchError):
    """The request could not be sent, or the response could not be read."""


class ContentError(FetchError):
    """The response body was empty or not in the expected format."""


class ValidationError(FetchError):
    """The archive was downloaded but is not an installable module."""


class InstallError(FetchError):
    """Extracting or moving the module into place failed."""


class CancelledError(FetchError):
    """The operation was cancelled or ran past its deadline."""


class CleanupError(FetchError):
    """A temporary file could not be removed."""

    fatal = False


class ErrorLog:
    """Append-only, thread-safe list of recorded errors."""

    def __init__(self):
        self._entries: list[FetchError] = []
        self._lock = threading.Lock()

    def append(self, error: FetchError) -> None:
        with self._lock:
            self._entries.append(error)

    def extend(self, errors) -> None:
        with self._lock:
            self._entries.extend(errors)

    @property
    def entries(self) -> list[FetchError]:
        with self._lock:
            return list(self._entries)

    @property
    def messages(self) -> list[str]:
        return [str(e) for e in self.entries]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self):
        return iter(self.entries)

    def __bool__(self) -> bool:
        return len(self) > 0
