from __future__ import annotations

import httpx
import pytest

from stripwatch.config import Settings
from stripwatch.core.constants import MISSING_CHECKSUM
from stripwatch.core.models import FetchErrorKind, FetchStatus
from stripwatch.providers.http_image import DirectImageFetcher, UnsupportedChecksumError, compute_checksum
from stripwatch.providers.json_api import JSONMetadataFetcher
from stripwatch.providers.registry import UnknownProviderError, build_fetcher
from tests.helpers import OTHER_PNG_BYTES, PNG_BYTES

_REAL_ASYNC_CLIENT = httpx.AsyncClient


def _patch_client(monkeypatch, handler, capture: list[httpx.Request]) -> None:
    def _recording_handler(request: httpx.Request) -> httpx.Response:
        capture.append(request)
        return handler(request)

    def _client_factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(_recording_handler)
        return _REAL_ASYNC_CLIENT(*args, **kwargs)

    monkeypatch.setattr("stripwatch.providers.http_image.httpx.AsyncClient", _client_factory)


def _image_response(body: bytes = PNG_BYTES, content_type: str = "image/png") -> httpx.Response:
    return httpx.Response(200, content=body, headers={"content-type": content_type})


@pytest.mark.asyncio
async def test_direct_fetch_returns_new_strip(monkeypatch) -> None:
    capture: list[httpx.Request] = []
    _patch_client(monkeypatch, lambda request: _image_response(), capture)

    fetcher = DirectImageFetcher(url="https://strips.example.test/today.png", default_title="Today")
    result = await fetcher.fetch(MISSING_CHECKSUM)

    assert result.status is FetchStatus.UPDATED
    assert result.strip is not None
    assert result.strip.checksum == compute_checksum(PNG_BYTES)
    assert result.strip.image == PNG_BYTES
    assert result.strip.title == "Today"
    assert result.strip.content_type == "image/png"
    assert "if-none-match" not in capture[0].headers


@pytest.mark.asyncio
async def test_direct_fetch_sends_conditional_token_and_honours_304(monkeypatch) -> None:
    capture: list[httpx.Request] = []
    _patch_client(monkeypatch, lambda request: httpx.Response(304), capture)
    previous = compute_checksum(PNG_BYTES)

    fetcher = DirectImageFetcher(url="https://strips.example.test/today.png")
    result = await fetcher.fetch(previous)

    assert result.status is FetchStatus.UNCHANGED
    assert result.strip is None
    assert capture[0].headers["if-none-match"] == f'"{previous}"'


@pytest.mark.asyncio
async def test_direct_fetch_detects_identical_payload(monkeypatch) -> None:
    _patch_client(monkeypatch, lambda request: _image_response(), [])

    fetcher = DirectImageFetcher(url="https://strips.example.test/today.png")
    result = await fetcher.fetch(compute_checksum(PNG_BYTES))

    assert result.status is FetchStatus.UNCHANGED


@pytest.mark.asyncio
async def test_direct_fetch_reports_changed_payload(monkeypatch) -> None:
    _patch_client(monkeypatch, lambda request: _image_response(OTHER_PNG_BYTES), [])

    fetcher = DirectImageFetcher(url="https://strips.example.test/today.png")
    result = await fetcher.fetch(compute_checksum(PNG_BYTES))

    assert result.status is FetchStatus.UPDATED
    assert result.strip is not None
    assert result.strip.checksum == compute_checksum(OTHER_PNG_BYTES)


@pytest.mark.asyncio
async def test_server_error_becomes_network_failure(monkeypatch) -> None:
    _patch_client(monkeypatch, lambda request: httpx.Response(503), [])

    fetcher = DirectImageFetcher(url="https://strips.example.test/today.png")
    result = await fetcher.fetch(MISSING_CHECKSUM)

    assert result.status is FetchStatus.FAILED
    assert result.error_kind is FetchErrorKind.NETWORK
    assert result.strip is None


@pytest.mark.asyncio
async def test_timeout_becomes_timeout_failure(monkeypatch) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    _patch_client(monkeypatch, _handler, [])

    fetcher = DirectImageFetcher(url="https://strips.example.test/today.png")
    result = await fetcher.fetch(MISSING_CHECKSUM)

    assert result.status is FetchStatus.FAILED
    assert result.error_kind is FetchErrorKind.TIMEOUT


@pytest.mark.asyncio
async def test_non_image_payload_is_malformed(monkeypatch) -> None:
    _patch_client(
        monkeypatch,
        lambda request: _image_response(b"<html>maintenance</html>", "text/html; charset=utf-8"),
        [],
    )

    fetcher = DirectImageFetcher(url="https://strips.example.test/today.png")
    result = await fetcher.fetch(MISSING_CHECKSUM)

    assert result.status is FetchStatus.FAILED
    assert result.error_kind is FetchErrorKind.MALFORMED


@pytest.mark.asyncio
async def test_empty_url_is_malformed_without_network(monkeypatch) -> None:
    capture: list[httpx.Request] = []
    _patch_client(monkeypatch, lambda request: _image_response(), capture)

    result = await DirectImageFetcher(url="").fetch(MISSING_CHECKSUM)

    assert result.status is FetchStatus.FAILED
    assert result.error_kind is FetchErrorKind.MALFORMED
    assert capture == []


@pytest.mark.asyncio
async def test_json_fetcher_resolves_image_and_title(monkeypatch) -> None:
    payload = {
        "data": {
            "date": "2026-10-19",
            "strip": {"caption": "Meetings", "src": "/strips/2026-10-19.gif"},
        }
    }

    def _handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/today":
            return httpx.Response(200, json=payload)
        return _image_response(PNG_BYTES, "image/gif")

    capture: list[httpx.Request] = []
    _patch_client(monkeypatch, _handler, capture)

    fetcher = JSONMetadataFetcher(
        metadata_url="https://strips.example.test/api/today",
        image_url_path="data.strip.src",
        title_path="data.strip.caption",
    )
    result = await fetcher.fetch(MISSING_CHECKSUM)

    assert str(capture[1].url) == "https://strips.example.test/strips/2026-10-19.gif"
    assert result.status is FetchStatus.UPDATED
    assert result.strip is not None
    assert result.strip.title == "Meetings"
    assert result.strip.content_type == "image/gif"


@pytest.mark.asyncio
async def test_json_fetcher_finds_image_without_explicit_path(monkeypatch) -> None:
    payload = {"items": [{"url": "https://cdn.example.test/a/strip.png?size=large"}]}

    def _handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "strips.example.test":
            return httpx.Response(200, json=payload)
        return _image_response()

    capture: list[httpx.Request] = []
    _patch_client(monkeypatch, _handler, capture)

    fetcher = JSONMetadataFetcher(metadata_url="https://strips.example.test/api/today", default_title="Fallback")
    result = await fetcher.fetch(MISSING_CHECKSUM)

    assert capture[1].url.host == "cdn.example.test"
    assert result.strip is not None
    assert result.strip.title == "Fallback"


@pytest.mark.asyncio
async def test_json_fetcher_without_image_reference_is_malformed(monkeypatch) -> None:
    _patch_client(monkeypatch, lambda request: httpx.Response(200, json={"data": {}}), [])

    fetcher = JSONMetadataFetcher(metadata_url="https://strips.example.test/api/today")
    result = await fetcher.fetch(MISSING_CHECKSUM)

    assert result.status is FetchStatus.FAILED
    assert result.error_kind is FetchErrorKind.MALFORMED


@pytest.mark.asyncio
async def test_json_fetcher_rejects_invalid_json(monkeypatch) -> None:
    _patch_client(
        monkeypatch,
        lambda request: httpx.Response(200, content=b"not json", headers={"content-type": "application/json"}),
        [],
    )

    fetcher = JSONMetadataFetcher(metadata_url="https://strips.example.test/api/today")
    result = await fetcher.fetch(MISSING_CHECKSUM)

    assert result.status is FetchStatus.FAILED
    assert result.error_kind is FetchErrorKind.MALFORMED


def test_build_fetcher_by_kind() -> None:
    assert isinstance(build_fetcher(Settings(provider_kind="direct")), DirectImageFetcher)
    assert isinstance(build_fetcher(Settings(provider_kind="json")), JSONMetadataFetcher)

    with pytest.raises(UnknownProviderError):
        build_fetcher(Settings(provider_kind="ftp"))


@pytest.mark.parametrize("algorithm", ["shake_128", "no-such-hash"])
def test_unsupported_checksum_algorithm_fails_at_startup(algorithm: str) -> None:
    with pytest.raises(UnsupportedChecksumError):
        build_fetcher(Settings(provider_kind="direct", checksum_algorithm=algorithm))
    with pytest.raises(UnsupportedChecksumError):
        build_fetcher(Settings(provider_kind="json", checksum_algorithm=algorithm))
    with pytest.raises(UnsupportedChecksumError):
        DirectImageFetcher(url="https://strips.example.test/today.png", checksum_algorithm=algorithm)


@pytest.mark.asyncio
async def test_alternative_checksum_algorithm_is_used(monkeypatch) -> None:
    _patch_client(monkeypatch, lambda request: _image_response(), [])

    fetcher = DirectImageFetcher(url="https://strips.example.test/today.png", checksum_algorithm="SHA256")
    result = await fetcher.fetch(MISSING_CHECKSUM)

    assert fetcher.checksum_algorithm == "sha256"
    assert result.strip is not None
    assert result.strip.checksum == compute_checksum(PNG_BYTES, "sha256")
