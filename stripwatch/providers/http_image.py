from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable

import httpx

from stripwatch.core.constants import MISSING_CHECKSUM
from stripwatch.core.models import FetchErrorKind, FetchResult, Strip
from stripwatch.providers.base import ProviderError

logger = logging.getLogger("stripwatch.fetcher")


class UnsupportedChecksumError(ValueError):
    pass


def validate_checksum_algorithm(algorithm: str) -> str:
    name = algorithm.strip().lower()
    if name not in hashlib.algorithms_available:
        raise UnsupportedChecksumError(f"Unknown checksum algorithm: {algorithm}")
    if name.startswith("shake_"):
        raise UnsupportedChecksumError(f"Variable-length checksum algorithm not supported: {algorithm}")
    return name


def compute_checksum(data: bytes, algorithm: str = "md5") -> str:
    return hashlib.new(algorithm, data, usedforsecurity=False).hexdigest()


def conditional_headers(previous_checksum: str) -> dict[str, str]:
    if previous_checksum == MISSING_CHECKSUM:
        return {}
    return {"If-None-Match": f'"{previous_checksum}"'}


async def download_strip(
    client: httpx.AsyncClient,
    image_url: str,
    *,
    previous_checksum: str,
    title: str,
    checksum_algorithm: str,
    require_image: bool,
) -> FetchResult:
    """Download ``image_url`` and wrap it in a Strip unless it is unchanged.

    Network and status errors propagate as ``httpx.HTTPError``; bodies that
    cannot be a strip raise ``ProviderError``.
    """
    response = await client.get(image_url, headers=conditional_headers(previous_checksum))
    if response.status_code == 304:
        logger.debug("Strip not modified (304) at %s", image_url)
        return FetchResult.unchanged()
    response.raise_for_status()

    image = response.content
    if not image:
        raise ProviderError(f"Empty body received from {image_url}")

    content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
    if require_image and content_type and not content_type.startswith("image/"):
        raise ProviderError(f"Unexpected content type {content_type!r} from {image_url}")

    checksum = compute_checksum(image, checksum_algorithm)
    if checksum == previous_checksum:
        logger.debug("Downloaded strip matches checksum %s", checksum)
        return FetchResult.unchanged()

    return FetchResult.updated(
        Strip(
            image=image,
            checksum=checksum,
            title=title,
            image_url=str(response.url),
            content_type=content_type,
            fetched_at=datetime.now(tz=timezone.utc),
        )
    )


async def guarded(fetch: Callable[[], Awaitable[FetchResult]]) -> FetchResult:
    """Collapse every transport or payload error into a failed result."""
    try:
        return await fetch()
    except httpx.TimeoutException as exc:
        logger.warning("Timed out fetching strip: %s", exc)
        return FetchResult.failed(str(exc) or "timeout", FetchErrorKind.TIMEOUT)
    except httpx.HTTPError as exc:
        logger.warning("Network error fetching strip: %s", exc)
        return FetchResult.failed(str(exc) or type(exc).__name__, FetchErrorKind.NETWORK)
    except (ProviderError, ValueError) as exc:
        logger.warning("Malformed response fetching strip: %s", exc)
        return FetchResult.failed(str(exc), FetchErrorKind.MALFORMED)


@dataclass
class DirectImageFetcher:
    url: str
    default_title: str = "Daily strip"
    timeout_seconds: int = 20
    checksum_algorithm: str = "md5"
    require_image: bool = True

    def __post_init__(self) -> None:
        self.checksum_algorithm = validate_checksum_algorithm(self.checksum_algorithm)

    async def fetch(self, previous_checksum: str) -> FetchResult:
        return await guarded(lambda: self._fetch(previous_checksum))

    async def _fetch(self, previous_checksum: str) -> FetchResult:
        if not self.url:
            raise ProviderError("PROVIDER_URL is empty")

        timeout = httpx.Timeout(self.timeout_seconds)
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            return await download_strip(
                client,
                self.url,
                previous_checksum=previous_checksum,
                title=self.default_title,
                checksum_algorithm=self.checksum_algorithm,
                require_image=self.require_image,
            )
