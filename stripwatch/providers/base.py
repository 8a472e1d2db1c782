from __future__ import annotations

from typing import Protocol

from stripwatch.core.models import FetchResult


class ProviderError(RuntimeError):
    """Raised when the remote source answers with something that is not a strip."""


class StripFetcher(Protocol):
    async def fetch(self, previous_checksum: str) -> FetchResult:
        """Fetch the current strip unless it still matches ``previous_checksum``."""
