from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class ScheduleConfig:
    enabled: bool
    interval: timedelta
    align_clock: bool = False

    @property
    def interval_seconds(self) -> float:
        return self.interval.total_seconds()

    @property
    def is_valid(self) -> bool:
        return self.interval_seconds > 0


NO_DOWNLOAD_SCHEDULE = ScheduleConfig(enabled=False, interval=timedelta(0))


@dataclass(frozen=True)
class Settings:
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    disclaimer_acknowledged: bool = False

    fetch_automatically: bool = True
    fetch_interval_minutes: int = 60
    fetch_align_clock: bool = False
    fetch_on_startup: bool = True

    provider_kind: str = "direct"
    provider_url: str = ""
    provider_image_url_path: str = ""
    provider_title_path: str = ""
    provider_default_title: str = "Daily strip"
    provider_timeout_seconds: int = 20
    provider_require_image: bool = True

    checksum_algorithm: str = "md5"

    def schedule_config(self) -> ScheduleConfig:
        if not self.fetch_automatically:
            return NO_DOWNLOAD_SCHEDULE
        return ScheduleConfig(
            enabled=True,
            interval=timedelta(minutes=self.fetch_interval_minutes),
            align_clock=self.fetch_align_clock,
        )


def _as_bool(raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    return int(raw)


def load_settings() -> Settings:
    return Settings(
        app_host=os.getenv("APP_HOST", "0.0.0.0"),
        app_port=_as_int(os.getenv("APP_PORT"), 8000),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        disclaimer_acknowledged=_as_bool(os.getenv("DISCLAIMER_ACKNOWLEDGED"), False),
        fetch_automatically=_as_bool(os.getenv("FETCH_AUTOMATICALLY"), True),
        fetch_interval_minutes=_as_int(os.getenv("FETCH_INTERVAL_MINUTES"), 60),
        fetch_align_clock=_as_bool(os.getenv("FETCH_ALIGN_CLOCK"), False),
        fetch_on_startup=_as_bool(os.getenv("FETCH_ON_STARTUP"), True),
        provider_kind=os.getenv("PROVIDER_KIND", "direct"),
        provider_url=os.getenv("PROVIDER_URL", ""),
        provider_image_url_path=os.getenv("PROVIDER_IMAGE_URL_PATH", ""),
        provider_title_path=os.getenv("PROVIDER_TITLE_PATH", ""),
        provider_default_title=os.getenv("PROVIDER_DEFAULT_TITLE", "Daily strip"),
        provider_timeout_seconds=_as_int(os.getenv("PROVIDER_TIMEOUT_SECONDS"), 20),
        provider_require_image=_as_bool(os.getenv("PROVIDER_REQUIRE_IMAGE"), True),
        checksum_algorithm=os.getenv("CHECKSUM_ALGORITHM", "md5"),
    )
