from __future__ import annotations

import threading
from datetime import datetime, timezone

from stripwatch.core.models import MISSING_STRIP, Strip


def _require_strip(value: object) -> None:
    if not isinstance(value, Strip):
        raise TypeError(f"StripCache only holds Strip values, got {type(value).__name__}")


class StripCache:
    """Single-slot holder for the most recent strip.

    Starts out holding ``MISSING_STRIP`` and is never empty.
    """

    def __init__(self, initial: Strip = MISSING_STRIP) -> None:
        _require_strip(initial)
        self._lock = threading.Lock()
        self._strip = initial
        self._updated_at: datetime | None = None

    def get(self) -> Strip:
        with self._lock:
            return self._strip

    def set(self, strip: Strip) -> None:
        _require_strip(strip)
        with self._lock:
            self._strip = strip
            self._updated_at = datetime.now(tz=timezone.utc)

    @property
    def updated_at(self) -> datetime | None:
        with self._lock:
            return self._updated_at
