from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

from fastapi import APIRouter, Header, HTTPException, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field

router = APIRouter()


class ScheduleUpdate(BaseModel):
    enabled: bool
    interval_minutes: int = Field(alias="intervalMinutes", ge=1)
    align_clock: bool = Field(default=False, alias="alignClock")


def _schedule_payload(request: Request) -> dict:
    scheduler = request.app.state.scheduler
    config = scheduler.config
    return {
        "enabled": config.enabled,
        "intervalMinutes": int(config.interval / timedelta(minutes=1)),
        "alignClock": config.align_clock,
        "running": scheduler.is_running(),
        "disclaimerAcknowledged": request.app.state.settings.disclaimer_acknowledged,
    }


@router.get("/healthz")
async def healthz(request: Request) -> dict:
    scheduler = request.app.state.scheduler
    return {
        "status": "ok",
        "scheduler": {
            "enabled": scheduler.config.enabled,
            "running": scheduler.is_running(),
            "fetching": scheduler.is_fetching(),
            "lastRunStatus": scheduler.last_run_status,
            "lastRunStartedAt": scheduler.last_run_started_at.isoformat() if scheduler.last_run_started_at else None,
            "lastRunFinishedAt": scheduler.last_run_finished_at.isoformat() if scheduler.last_run_finished_at else None,
            "lastError": scheduler.last_error,
        },
    }


@router.get("/v1/strip/latest")
async def latest_strip(request: Request) -> dict:
    strip = request.app.state.scheduler.current_strip
    if strip.is_missing:
        raise HTTPException(status_code=404, detail="No strip available")
    return {
        "title": strip.title,
        "checksum": strip.checksum,
        "imageUrl": strip.image_url,
        "contentType": strip.content_type,
        "size": len(strip.image),
        "fetchedAt": strip.fetched_at.isoformat() if strip.fetched_at else None,
    }


@router.get("/v1/strip/latest/image")
async def latest_strip_image(
    request: Request,
    if_none_match: str | None = Header(default=None),
) -> Response:
    strip = request.app.state.scheduler.current_strip
    if strip.is_missing:
        raise HTTPException(status_code=404, detail="No strip available")

    etag = f'"{strip.checksum}"'
    if if_none_match is not None and etag in {tag.strip() for tag in if_none_match.split(",")}:
        return Response(status_code=304, headers={"ETag": etag})
    return Response(
        content=strip.image,
        media_type=strip.content_type or "application/octet-stream",
        headers={"ETag": etag},
    )


@router.post("/v1/strip/fetch", status_code=202)
async def fetch_strip(
    request: Request,
    checksum: str | None = Query(default=None),
) -> dict:
    submitted = request.app.state.scheduler.fetch_now(checksum)
    return {"submitted": submitted}


@router.get("/v1/schedule")
async def get_schedule(request: Request) -> dict:
    return _schedule_payload(request)


@router.put("/v1/schedule")
async def put_schedule(request: Request, update: ScheduleUpdate) -> dict:
    settings = replace(
        request.app.state.settings,
        fetch_automatically=update.enabled,
        fetch_interval_minutes=update.interval_minutes,
        fetch_align_clock=update.align_clock,
    )
    request.app.state.settings = settings
    await request.app.state.scheduler.start(settings.schedule_config())
    return _schedule_payload(request)


@router.post("/v1/disclaimer")
async def acknowledge_disclaimer(request: Request) -> dict:
    settings = request.app.state.settings
    if not settings.disclaimer_acknowledged:
        settings = replace(settings, disclaimer_acknowledged=True)
        request.app.state.settings = settings
        await request.app.state.scheduler.start(settings.schedule_config())
    return _schedule_payload(request)


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    payload, content_type = request.app.state.metrics.render()
    return Response(content=payload, media_type=content_type)
