"""HTTP route definitions for the service."""

from __future__ import annotations

import asyncio
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import DashboardSnapshot, HistoryMode, ReadingOut, SensorSummary
from models.records import normalize_kind, unit_for
from services.scheduler import PollingScheduler, build_default_scheduler

router = APIRouter()


def get_scheduler() -> PollingScheduler:
    return build_default_scheduler()


def _build_snapshot(scheduler: PollingScheduler) -> DashboardSnapshot:
    board = scheduler.status.snapshot()
    live_history = scheduler.live.history
    chart_history = scheduler.chart.history
    sensors: List[SensorSummary] = []
    for kind in live_history.kinds():
        latest = live_history.latest(kind)
        sensors.append(
            SensorSummary(
                kind=kind,
                unit=unit_for(kind),
                latest=ReadingOut.from_reading(latest) if latest is not None else None,
                live_count=len(live_history.get(kind)),
                chart_count=len(chart_history.get(kind)),
            )
        )
    return DashboardSnapshot(
        loading=board.loading,
        error=board.error,
        last_updated=board.last_updated,
        scheduler_running=scheduler.running,
        sensors=sensors,
    )


@router.get(
    "/dashboard",
    response_model=DashboardSnapshot,
    summary="Latest value per sensor plus polling status.",
)
async def get_dashboard(
    scheduler: PollingScheduler = Depends(get_scheduler),
) -> DashboardSnapshot:
    return _build_snapshot(scheduler)


@router.get(
    "/history/{kind}",
    response_model=List[ReadingOut],
    summary="Stored readings for one sensor kind, oldest first.",
)
async def get_history(
    kind: str,
    mode: HistoryMode = Query(HistoryMode.live, description="Which history to read."),
    scheduler: PollingScheduler = Depends(get_scheduler),
) -> List[ReadingOut]:
    history = scheduler.live.history if mode is HistoryMode.live else scheduler.chart.history
    if normalize_kind(kind) not in history.kinds():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown sensor kind {kind!r}.",
        )
    return [ReadingOut.from_reading(reading) for reading in history.get(kind)]


@router.post(
    "/refresh",
    response_model=DashboardSnapshot,
    summary="Run a live and a chart tick now and return the updated dashboard.",
)
async def refresh(
    scheduler: PollingScheduler = Depends(get_scheduler),
) -> DashboardSnapshot:
    await asyncio.gather(*scheduler.refresh_now())
    return _build_snapshot(scheduler)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /dashboard for sensor data."}
