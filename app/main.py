from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.scheduler import build_default_scheduler


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    scheduler = build_default_scheduler()
    await scheduler.start()
    try:
        yield
    finally:
        await scheduler.stop()
        build_default_scheduler.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Amniosense Dashboard",
        description="Polls a remote sensor endpoint and serves live and chart histories.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
