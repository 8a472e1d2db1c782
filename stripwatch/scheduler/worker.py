from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timezone
from time import perf_counter
from typing import Callable

from stripwatch.config import NO_DOWNLOAD_SCHEDULE, ScheduleConfig
from stripwatch.core.constants import MISSING_CHECKSUM, TRIGGER_MANUAL, TRIGGER_TICK
from stripwatch.core.models import (
    MISSING_STRIP,
    FetchErrorKind,
    FetchJob,
    FetchResult,
    FetchStatus,
    Strip,
    StripEvent,
)
from stripwatch.notifications.hub import NotificationHub, StripListener
from stripwatch.observability.metrics import Metrics
from stripwatch.providers.base import StripFetcher
from stripwatch.storage.cache import StripCache


class PeriodicFetchScheduler:
    """Runs strip fetches on a timer and on demand, one at a time.

    The scheduler owns the cache and the notification hub: every completed
    fetch is applied to the cache and fanned out to listeners before the
    next trigger is accepted. Triggers arriving while a fetch is in flight
    are dropped. Control methods must be called from the event loop thread.
    """

    def __init__(
        self,
        fetcher: StripFetcher,
        *,
        cache: StripCache | None = None,
        hub: NotificationHub | None = None,
        metrics: Metrics | None = None,
        disclaimer_acknowledged: Callable[[], bool] | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.cache = cache if cache is not None else StripCache()
        self.hub = hub if hub is not None else NotificationHub()
        self.metrics = metrics if metrics is not None else Metrics()
        self._disclaimer_acknowledged = disclaimer_acknowledged or (lambda: True)

        self._config: ScheduleConfig = NO_DOWNLOAD_SCHEDULE
        self._timer: asyncio.Task[None] | None = None
        self._inflight: asyncio.Task[None] | None = None
        self._generation = 0
        self._closed = False
        self._logger = logging.getLogger("stripwatch.scheduler")

        self.last_run_status: str = "never"
        self.last_run_started_at: datetime | None = None
        self.last_run_finished_at: datetime | None = None
        self.last_error: str | None = None

    @property
    def config(self) -> ScheduleConfig:
        return self._config

    @property
    def current_strip(self) -> Strip:
        return self.cache.get()

    def subscribe(self, listener: StripListener | None) -> None:
        self.hub.subscribe(listener)
        self.metrics.listeners.set(len(self.hub))

    def unsubscribe(self, listener: StripListener | None) -> None:
        self.hub.unsubscribe(listener)
        self.metrics.listeners.set(len(self.hub))

    def is_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def is_fetching(self) -> bool:
        return self._inflight is not None

    async def start(self, config: ScheduleConfig) -> None:
        # The old timer is cancelled and the new one armed without yielding,
        # so concurrent calls can never leave two timers behind.
        previous, self._timer = self._timer, None
        if previous is not None:
            previous.cancel()

        if self._closed:
            self._logger.debug("Scheduler closed; ignoring start")
            if previous is not None:
                await asyncio.wait([previous])
            return

        self._config = config
        if not config.enabled:
            self._logger.info("Unattended fetching disabled")
        elif not config.is_valid:
            self._logger.warning("Ignoring schedule with non-positive interval %s", config.interval)
        elif not self._disclaimer_acknowledged():
            self._logger.info("Disclaimer not acknowledged; unattended fetching stays off")
        else:
            self._timer = asyncio.create_task(self._run_loop(config), name="strip-timer")
            self._logger.info("Unattended fetching every %s", config.interval)

        if previous is not None:
            await asyncio.wait([previous])

    async def stop(self) -> None:
        previous, self._timer = self._timer, None
        if previous is None:
            return
        previous.cancel()
        await asyncio.wait([previous])
        self._logger.info("Unattended fetching stopped")

    def fetch_now(self, checksum: str | None = None) -> bool:
        """Submit a fetch unless one is already running.

        ``checksum`` is the conditional token sent to the remote source;
        ``None`` forces a full download. Returns whether a job was submitted.
        """
        return self._trigger(MISSING_CHECKSUM if checksum is None else checksum, TRIGGER_MANUAL)

    async def wait_idle(self) -> None:
        task = self._inflight
        if task is not None:
            await asyncio.wait([task])

    async def close(self, grace_seconds: float = 5.0) -> None:
        """Stop for good; results of fetches still in flight are discarded."""
        self._closed = True
        self._generation += 1
        await self.stop()

        task = self._inflight
        if task is None:
            return
        _, pending = await asyncio.wait([task], timeout=grace_seconds)
        if pending:
            task.cancel()
            await asyncio.wait([task])

    def _trigger(self, checksum: str, trigger: str) -> bool:
        if self._closed:
            self.metrics.mark_trigger_dropped("closed")
            return False
        if not self._disclaimer_acknowledged():
            self._logger.debug("Disclaimer not acknowledged; %s trigger ignored", trigger)
            self.metrics.mark_trigger_dropped("disclaimer")
            return False
        if self._inflight is not None:
            self._logger.debug("Fetch already in flight; %s trigger dropped", trigger)
            self.metrics.mark_trigger_dropped("busy")
            return False

        job = FetchJob(checksum=checksum, generation=self._generation, trigger=trigger)
        self._inflight = asyncio.create_task(self._execute(job), name="strip-fetch")
        return True

    async def _execute(self, job: FetchJob) -> None:
        self.last_run_started_at = datetime.now(tz=timezone.utc)
        timer_start = perf_counter()

        try:
            try:
                result = await self.fetcher.fetch(job.checksum)
            except Exception as exc:
                self._logger.exception("Unhandled error in strip fetcher")
                result = FetchResult.failed(str(exc) or type(exc).__name__, FetchErrorKind.NETWORK)

            self._apply(job, result)
            self.metrics.fetch_duration_seconds.observe(perf_counter() - timer_start)
        finally:
            self._inflight = None

    def _apply(self, job: FetchJob, result: FetchResult) -> None:
        if job.generation != self._generation:
            self._logger.info("Discarding %s result from a torn-down scheduler", result.status.value)
            self.metrics.mark_fetch_status("stale")
            return

        self.last_run_finished_at = datetime.now(tz=timezone.utc)
        self.last_run_status = result.status.value
        self.last_error = result.error
        self.metrics.mark_fetch_status(result.status.value)

        if result.status is FetchStatus.UNCHANGED:
            self._logger.info("Strip unchanged (%s trigger)", job.trigger)
            return

        if result.status is FetchStatus.UPDATED and result.strip is not None:
            strip = result.strip
            self._logger.info("New strip %s (%s trigger)", strip.checksum, job.trigger)
            self.metrics.mark_strip_updated(strip.fetched_at)
        else:
            strip = MISSING_STRIP
            kind = result.error_kind.value if result.error_kind else "unknown"
            self._logger.info("Strip fetch failed (%s): %s", kind, result.error)

        self.cache.set(strip)
        self.hub.notify_all(StripEvent(strip=strip, status=result.status))

    async def _run_loop(self, config: ScheduleConfig) -> None:
        while True:
            await asyncio.sleep(self._next_sleep_seconds(config))
            self._trigger(self.cache.get().checksum, TRIGGER_TICK)

    @staticmethod
    def _next_sleep_seconds(config: ScheduleConfig) -> float:
        interval_seconds = config.interval_seconds
        if not config.align_clock:
            return interval_seconds

        now = datetime.now(tz=timezone.utc).timestamp()
        next_tick = (math.floor(now / interval_seconds) + 1) * interval_seconds
        return max(next_tick - now, min(interval_seconds, 1.0))
