from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from stripwatch.core.models import FetchResult, Strip
from stripwatch.providers.http_image import compute_checksum

PNG_BYTES = b"\x89PNG\r\n\x1a\nfirst-strip"
OTHER_PNG_BYTES = b"\x89PNG\r\n\x1a\nsecond-strip"


def make_strip(image: bytes = PNG_BYTES, title: str = "Daily strip") -> Strip:
    return Strip(
        image=image,
        checksum=compute_checksum(image),
        title=title,
        image_url="https://strips.example.test/today.png",
        content_type="image/png",
        fetched_at=datetime(2026, 10, 19, 6, 0, tzinfo=timezone.utc),
    )


class FakeFetcher:
    """Scripted fetcher; with ``block=True`` each fetch waits for ``release``."""

    def __init__(self, *results: FetchResult | Exception, block: bool = False) -> None:
        self.results = list(results)
        self.calls: list[str] = []
        self.release = asyncio.Event()
        if not block:
            self.release.set()
        self.active = 0
        self.max_active = 0

    async def fetch(self, previous_checksum: str) -> FetchResult:
        self.calls.append(previous_checksum)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await self.release.wait()
        finally:
            self.active -= 1

        if not self.results:
            return FetchResult.unchanged()
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result
