from __future__ import annotations

import logging

from fastapi import FastAPI

from stripwatch.api.routes import router as api_router
from stripwatch.config import Settings, load_settings
from stripwatch.core.models import StripEvent
from stripwatch.observability.metrics import Metrics
from stripwatch.providers.base import StripFetcher
from stripwatch.providers.registry import build_fetcher
from stripwatch.scheduler.worker import PeriodicFetchScheduler


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def log_strip_event(event: StripEvent) -> None:
    logging.getLogger("stripwatch.events").info(
        "Strip %s: %r (%s)", event.status.value, event.strip.title, event.strip.checksum or "missing"
    )


def create_app(settings: Settings | None = None, fetcher: StripFetcher | None = None) -> FastAPI:
    app_settings = settings or load_settings()
    configure_logging(app_settings.log_level)

    metrics = Metrics()
    app = FastAPI(title="stripwatch", version="0.1.0")
    app.state.settings = app_settings
    app.state.metrics = metrics

    scheduler = PeriodicFetchScheduler(
        fetcher or build_fetcher(app_settings),
        metrics=metrics,
        disclaimer_acknowledged=lambda: app.state.settings.disclaimer_acknowledged,
    )
    scheduler.subscribe(log_strip_event)
    app.state.scheduler = scheduler

    @app.on_event("startup")
    async def _on_startup() -> None:
        await scheduler.start(app.state.settings.schedule_config())
        if app.state.settings.fetch_on_startup:
            scheduler.fetch_now()

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        await scheduler.close()

    app.include_router(api_router)
    return app


app = create_app()
