from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import urljoin, urlsplit

import httpx

from stripwatch.core.constants import IMAGE_SUFFIXES
from stripwatch.core.models import FetchResult
from stripwatch.providers.base import ProviderError
from stripwatch.providers.http_image import download_strip, guarded, validate_checksum_algorithm


def _extract_path(payload: Any, path: str) -> Any:
    current = payload
    if not path:
        return None

    for chunk in path.split("."):
        if isinstance(current, dict):
            if chunk not in current:
                return None
            current = current[chunk]
            continue

        if isinstance(current, list):
            try:
                index = int(chunk)
            except ValueError:
                return None
            if index < 0 or index >= len(current):
                return None
            current = current[index]
            continue

        return None

    return current


def _walk_values(node: Any):
    if isinstance(node, dict):
        for key, value in node.items():
            yield key, value
            yield from _walk_values(value)
        return

    if isinstance(node, list):
        for item in node:
            yield from _walk_values(item)


def _looks_like_image(value: str) -> bool:
    path = urlsplit(value.strip()).path.lower()
    return path.endswith(IMAGE_SUFFIXES)


def _find_image_ref(payload: Any) -> str | None:
    for _, value in _walk_values(payload):
        if isinstance(value, str) and _looks_like_image(value):
            return value.strip()
    return None


def _normalize_image_url(base_url: str, raw_image_ref: str) -> str:
    uri = raw_image_ref.strip()
    if not uri:
        raise ProviderError("Resolved image URI is empty")

    if uri.startswith("http://") or uri.startswith("https://"):
        return uri

    if uri.startswith("//"):
        return f"{urlsplit(base_url).scheme}:{uri}"

    return urljoin(base_url, uri)


@dataclass
class JSONMetadataFetcher:
    """Two-step fetch: a JSON document names today's image, then the image itself."""

    metadata_url: str
    image_url_path: str = ""
    title_path: str = ""
    default_title: str = "Daily strip"
    timeout_seconds: int = 20
    checksum_algorithm: str = "md5"
    require_image: bool = True

    def __post_init__(self) -> None:
        self.checksum_algorithm = validate_checksum_algorithm(self.checksum_algorithm)

    async def fetch(self, previous_checksum: str) -> FetchResult:
        return await guarded(lambda: self._fetch(previous_checksum))

    async def _fetch(self, previous_checksum: str) -> FetchResult:
        if not self.metadata_url:
            raise ProviderError("PROVIDER_URL is empty")

        timeout = httpx.Timeout(self.timeout_seconds)
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            response = await client.get(self.metadata_url)
            response.raise_for_status()
            payload = response.json()

            image_value = _extract_path(payload, self.image_url_path)
            if not isinstance(image_value, str) or not image_value.strip():
                image_value = _find_image_ref(payload)

            if not isinstance(image_value, str) or not image_value.strip():
                raise ProviderError(
                    "Could not resolve image URI from metadata payload. Set PROVIDER_IMAGE_URL_PATH or check payload shape."
                )

            title_value = _extract_path(payload, self.title_path)
            title = title_value.strip() if isinstance(title_value, str) and title_value.strip() else self.default_title

            return await download_strip(
                client,
                _normalize_image_url(self.metadata_url, image_value),
                previous_checksum=previous_checksum,
                title=title,
                checksum_algorithm=self.checksum_algorithm,
                require_image=self.require_image,
            )
