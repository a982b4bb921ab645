"""Track GitHub's request quota from response headers."""

import re
import threading
import time

import httpx

from .models import RATE_LIMIT_REMAINING_HEADERS, RATE_LIMIT_RESET_HEADERS

# int() alone would also take "4_2" and non-ASCII digits
_INTEGER = re.compile(r"[+-]?[0-9]+")


def _header_value(headers, names: tuple[str, ...]) -> str | None:
    """Find a header by exact (case-sensitive) name.

    httpx.Headers folds names to lowercase on lookup, so its raw wire
    casing is scanned instead.
    """
    if isinstance(headers, httpx.Headers):
        pairs = [(k.decode("latin-1"), v.decode("latin-1")) for k, v in headers.raw]
    else:
        pairs = list(headers.items())
    for key, value in pairs:
        if key in names:
            return value
    return None


def _parse_int(value: str | None) -> int:
    if value is None:
        return 0
    value = value.strip()
    if not _INTEGER.fullmatch(value):
        return 0
    return int(value)


class RateLimiter:
    """Remembers the quota reported by the most recent response.

    Nothing here blocks or retries; callers read ``remaining`` and decide.
    """

    def __init__(self):
        self.remaining = 0
        self.reset_at = 0  # unix timestamp when the quota resets
        self._lock = threading.Lock()

    def observe(self, headers) -> int:
        """Record and return the remaining-requests count from ``headers``.

        Returns 0 when the header is missing or not an integer.
        """
        remaining = _parse_int(_header_value(headers, RATE_LIMIT_REMAINING_HEADERS))
        reset_at = _parse_int(_header_value(headers, RATE_LIMIT_RESET_HEADERS))
        with self._lock:
            self.remaining = remaining
            self.reset_at = reset_at
        return remaining

    @property
    def seconds_until_reset(self) -> int:
        """Seconds until the quota resets, 0 if unknown or already reset."""
        return max(0, int(self.reset_at - time.time()))
