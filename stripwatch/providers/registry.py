from __future__ import annotations

from stripwatch.config import Settings
from stripwatch.providers.base import StripFetcher
from stripwatch.providers.http_image import DirectImageFetcher
from stripwatch.providers.json_api import JSONMetadataFetcher


class UnknownProviderError(RuntimeError):
    pass


def build_fetcher(settings: Settings) -> StripFetcher:
    if settings.provider_kind == "direct":
        return DirectImageFetcher(
            url=settings.provider_url,
            default_title=settings.provider_default_title,
            timeout_seconds=settings.provider_timeout_seconds,
            checksum_algorithm=settings.checksum_algorithm,
            require_image=settings.provider_require_image,
        )

    if settings.provider_kind == "json":
        return JSONMetadataFetcher(
            metadata_url=settings.provider_url,
            image_url_path=settings.provider_image_url_path,
            title_path=settings.provider_title_path,
            default_title=settings.provider_default_title,
            timeout_seconds=settings.provider_timeout_seconds,
            checksum_algorithm=settings.checksum_algorithm,
            require_image=settings.provider_require_image,
        )

    raise UnknownProviderError(f"Unsupported provider kind: {settings.provider_kind}")
