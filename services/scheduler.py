"""Periodic orchestration of the live and chart aggregators."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Awaitable, Callable, List, Optional, Set

from datastore.history import DashboardStatus, HistoryStore
from services.aggregator import ChartAggregator, LiveAggregator
from services.fetcher import SensorFetcher
from settings import get_settings

logger = logging.getLogger(__name__)

TickFn = Callable[[], Awaitable[Any]]


class PollingScheduler:
    """Owns the two repeating timers and the ticks they launch.

    Ticks run as independent tasks: a slow fetch never delays the next timer
    firing, and overlapping ticks all run to completion.
    """

    def __init__(
        self,
        fetcher: SensorFetcher,
        live: LiveAggregator,
        chart: ChartAggregator,
        live_interval: float = 5.0,
        chart_interval: float = 10.0,
    ) -> None:
        self.fetcher = fetcher
        self.live = live
        self.chart = chart
        self.live_interval = live_interval
        self.chart_interval = chart_interval
        self._timers: List[asyncio.Task[None]] = []
        self._in_flight: Set[asyncio.Task[Any]] = set()

    @property
    def running(self) -> bool:
        return bool(self._timers)

    @property
    def status(self) -> DashboardStatus:
        return self.live.status

    async def start(self) -> None:
        if self._timers:
            return
        self._timers = [
            asyncio.create_task(self._repeat("live", self.live.run_tick, self.live_interval)),
            asyncio.create_task(self._repeat("chart", self.chart.run_tick, self.chart_interval)),
        ]
        logger.info(
            "Polling started",
            extra={"endpoint": self.fetcher.endpoint_url},
        )

    def refresh_now(self) -> List[asyncio.Task[Any]]:
        """Launch one live and one chart tick immediately."""
        return [
            self._launch("live", self.live.run_tick),
            self._launch("chart", self.chart.run_tick),
        ]

    async def stop(self) -> None:
        """Cancel the timers, let in-flight ticks finish, then close the fetcher."""
        timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)
        await self.fetcher.aclose()
        logger.info("Polling stopped")

    async def _repeat(self, name: str, tick: TickFn, interval: float) -> None:
        while True:
            self._launch(name, tick)
            await asyncio.sleep(interval)

    def _launch(self, name: str, tick: TickFn) -> asyncio.Task[Any]:
        task = asyncio.create_task(tick(), name=f"{name}-tick")
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task


def build_scheduler(
    endpoint_url: str,
    live_interval: float = 5.0,
    chart_interval: float = 10.0,
    live_limit: int = 200,
    chart_limit: int = 50,
    fetcher: Optional[SensorFetcher] = None,
    fetch_timeout: float = 30.0,
) -> PollingScheduler:
    """Wire a scheduler with its own fetcher, histories, and status board."""
    fetcher = fetcher or SensorFetcher(endpoint_url, timeout=fetch_timeout)
    status = DashboardStatus()
    live = LiveAggregator(fetcher, HistoryStore("live", live_limit), status)
    chart = ChartAggregator(fetcher, HistoryStore("chart", chart_limit), status)
    return PollingScheduler(
        fetcher=fetcher,
        live=live,
        chart=chart,
        live_interval=live_interval,
        chart_interval=chart_interval,
    )


@lru_cache
def build_default_scheduler() -> PollingScheduler:
    """Factory that wires the scheduler from environment settings."""
    settings = get_settings()
    return build_scheduler(
        endpoint_url=settings.endpoint_url,
        live_interval=settings.live_interval,
        chart_interval=settings.chart_interval,
        live_limit=settings.live_history_limit,
        chart_limit=settings.chart_history_limit,
        fetch_timeout=settings.fetch_timeout,
    )
