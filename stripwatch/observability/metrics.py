from __future__ import annotations

from datetime import datetime, timezone

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class Metrics:
    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry(auto_describe=True)
        self.fetch_runs_total = Counter(
            "stripwatch_fetch_runs_total",
            "Total strip fetch runs by status",
            labelnames=("status",),
            registry=self.registry,
        )
        self.fetch_duration_seconds = Histogram(
            "stripwatch_fetch_duration_seconds",
            "Duration of strip fetch runs in seconds",
            registry=self.registry,
        )
        self.triggers_dropped_total = Counter(
            "stripwatch_triggers_dropped_total",
            "Fetch triggers discarded without running a fetch",
            labelnames=("reason",),
            registry=self.registry,
        )
        self.last_update_epoch = Gauge(
            "stripwatch_last_update_epoch_seconds",
            "Unix timestamp of the last fetch that produced a new strip",
            registry=self.registry,
        )
        self.listeners = Gauge(
            "stripwatch_listeners",
            "Number of registered strip listeners",
            registry=self.registry,
        )

    def mark_fetch_status(self, status: str) -> None:
        self.fetch_runs_total.labels(status=status).inc()

    def mark_trigger_dropped(self, reason: str) -> None:
        self.triggers_dropped_total.labels(reason=reason).inc()

    def mark_strip_updated(self, fetched_at_utc: datetime | None = None) -> None:
        moment = fetched_at_utc or datetime.now(tz=timezone.utc)
        self.last_update_epoch.set(moment.astimezone(timezone.utc).timestamp())

    def render(self) -> tuple[bytes, str]:
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
