from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from stripwatch.core.constants import MISSING_CHECKSUM, MISSING_TITLE


class FetchStatus(str, Enum):
    UNCHANGED = "unchanged"
    UPDATED = "updated"
    FAILED = "failed"


class FetchErrorKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    MALFORMED = "malformed"


@dataclass(frozen=True, eq=False)
class Strip:
    image: bytes
    checksum: str
    title: str
    image_url: str = ""
    content_type: str = ""
    fetched_at: datetime | None = None

    @property
    def is_missing(self) -> bool:
        return self.checksum == MISSING_CHECKSUM

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Strip):
            return NotImplemented
        return self.checksum == other.checksum

    def __hash__(self) -> int:
        return hash(self.checksum)


MISSING_STRIP = Strip(image=b"", checksum=MISSING_CHECKSUM, title=MISSING_TITLE)


@dataclass(frozen=True)
class FetchResult:
    status: FetchStatus
    strip: Strip | None = None
    error: str | None = None
    error_kind: FetchErrorKind | None = None

    @classmethod
    def unchanged(cls) -> FetchResult:
        return cls(status=FetchStatus.UNCHANGED)

    @classmethod
    def updated(cls, strip: Strip) -> FetchResult:
        return cls(status=FetchStatus.UPDATED, strip=strip)

    @classmethod
    def failed(cls, error: str, kind: FetchErrorKind = FetchErrorKind.NETWORK) -> FetchResult:
        return cls(status=FetchStatus.FAILED, error=error, error_kind=kind)


@dataclass(frozen=True)
class FetchJob:
    checksum: str
    generation: int
    trigger: str
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))


@dataclass(frozen=True)
class StripEvent:
    strip: Strip
    status: FetchStatus
