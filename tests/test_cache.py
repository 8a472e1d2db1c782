from __future__ import annotations

import pytest

from stripwatch.core.models import MISSING_STRIP
from stripwatch.storage.cache import StripCache
from tests.helpers import make_strip


def test_cache_starts_with_missing_strip() -> None:
    cache = StripCache()

    assert cache.get() is MISSING_STRIP
    assert cache.updated_at is None


def test_cache_replaces_single_slot() -> None:
    cache = StripCache()
    strip = make_strip()

    cache.set(strip)

    assert cache.get() is strip
    assert cache.updated_at is not None

    cache.set(MISSING_STRIP)
    assert cache.get() is MISSING_STRIP


def test_cache_rejects_none() -> None:
    cache = StripCache()

    with pytest.raises(TypeError):
        cache.set(None)  # type: ignore[arg-type]

    assert cache.get() is MISSING_STRIP


def test_cache_rejects_none_as_initial_value() -> None:
    with pytest.raises(TypeError):
        StripCache(None)  # type: ignore[arg-type]
