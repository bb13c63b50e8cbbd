"""Unit tests for the live and chart history policies."""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timedelta, timezone
from typing import List, Sequence, Union

import httpx

from datastore.history import DashboardStatus, HistoryStore
from models.records import SensorReading
from services.aggregator import (
    ChartAggregator,
    LiveAggregator,
    latest_per_kind,
    recent_window,
)
from services.fetcher import HttpStatusError, SensorFetcher

BASE_TIME = datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)

Batch = Union[Sequence[SensorReading], Exception]


class StubFetcher:
    endpoint_url = "http://sensors.test/get-data"

    def __init__(self, *batches: Batch) -> None:
        self.batches: List[Batch] = list(batches)
        self.calls = 0

    async def fetch_readings(self) -> List[SensorReading]:
        self.calls += 1
        batch = self.batches.pop(0) if len(self.batches) > 1 else self.batches[0]
        if isinstance(batch, Exception):
            raise batch
        return list(batch)

    async def aclose(self) -> None:
        return None


def _reading(kind: str, value: float, offset_s: int = 0) -> SensorReading:
    return SensorReading(kind=kind, value=value, observed_at=BASE_TIME + timedelta(seconds=offset_s))


def _live(fetcher, limit: int = 200) -> LiveAggregator:
    return LiveAggregator(fetcher, HistoryStore("live", limit), DashboardStatus())


def _chart(fetcher, limit: int = 50) -> ChartAggregator:
    return ChartAggregator(fetcher, HistoryStore("chart", limit), DashboardStatus())


def test_latest_per_kind_prefers_later_and_keeps_first_on_tie() -> None:
    first = _reading("temperature", 1.0, 0)
    tie = _reading("Temperature", 2.0, 0)
    moisture = _reading("Moisture", 3.0, 4)

    latest = latest_per_kind([first, tie, moisture])

    assert latest == {"Temperature": first, "Moisture": moisture}


def test_recent_window_sorts_and_truncates() -> None:
    readings = [_reading("Moisture", float(i), i) for i in (3, 1, 2, 0)]

    window = recent_window(readings, 2)

    assert [r.value for r in window] == [2.0, 3.0]


def test_live_tick_keeps_only_latest_reading_per_kind() -> None:
    older = _reading("temperature", 20.0, 0)
    newer = _reading("temperature", 21.0, 30)
    aggregator = _live(StubFetcher([newer, older]))

    applied = asyncio.run(aggregator.run_tick())

    assert applied == {"Temperature": newer}
    assert aggregator.history.get("Temperature") == [newer]
    assert aggregator.history.get("Moisture") == []


def test_live_tick_ignores_untracked_kinds() -> None:
    aggregator = _live(StubFetcher([_reading("Humidity", 50.0), _reading("-", 1.0)]))

    applied = asyncio.run(aggregator.run_tick())

    assert applied == {}
    assert aggregator.history.snapshot() == {"Temperature": [], "Moisture": []}


def test_live_history_is_capped_with_fifo_eviction() -> None:
    batches = [[_reading("Temperature", float(i), i)] for i in range(201)]
    aggregator = _live(StubFetcher(*batches))

    async def run() -> None:
        for _ in range(201):
            await aggregator.run_tick()

    asyncio.run(run())

    history = aggregator.history.get("Temperature")
    assert len(history) == 200
    assert history[0].value == 1.0
    assert history[-1].value == 200.0


def test_live_last_updated_tracks_newest_reading_and_survives_empty_ticks() -> None:
    batches = [
        [_reading("Temperature", 1.0, 0), _reading("Moisture", 2.0, 5)],
        [],
    ]
    aggregator = _live(StubFetcher(*batches))

    asyncio.run(aggregator.run_tick())
    assert aggregator.status.snapshot().last_updated == BASE_TIME + timedelta(seconds=5)

    asyncio.run(aggregator.run_tick())
    snapshot = aggregator.status.snapshot()
    assert snapshot.last_updated == BASE_TIME + timedelta(seconds=5)
    assert snapshot.error is None


def test_live_tick_failure_records_error_and_keeps_history() -> None:
    good = _reading("Temperature", 36.6, 0)
    fetcher = StubFetcher([good], HttpStatusError(500, "Internal Server Error"))
    aggregator = _live(fetcher)

    asyncio.run(aggregator.run_tick())
    applied = asyncio.run(aggregator.run_tick())

    snapshot = aggregator.status.snapshot()
    assert applied == {}
    assert snapshot.error is not None and "500" in snapshot.error
    assert snapshot.loading is False
    assert aggregator.history.get("Temperature") == [good]


def test_unexpected_errors_do_not_escape_the_tick() -> None:
    aggregator = _live(StubFetcher(RuntimeError("socket exploded")))

    applied = asyncio.run(aggregator.run_tick())

    assert applied == {}
    assert aggregator.status.snapshot().error == "socket exploded"


def test_successful_tick_clears_previous_error() -> None:
    fetcher = StubFetcher(HttpStatusError(502, "Bad Gateway"), [_reading("Moisture", 3.0)])
    aggregator = _live(fetcher)

    asyncio.run(aggregator.run_tick())
    asyncio.run(aggregator.run_tick())

    assert aggregator.status.snapshot().error is None


def test_chart_tick_replaces_previous_window() -> None:
    first = [_reading("Moisture", float(i), i) for i in range(5)]
    second = [_reading("Moisture", float(100 + i), 100 + i) for i in range(3)]
    aggregator = _chart(StubFetcher(first, second))

    asyncio.run(aggregator.run_tick())
    asyncio.run(aggregator.run_tick())

    assert aggregator.history.get("Moisture") == second


def test_chart_tick_keeps_fifty_most_recent_in_ascending_order() -> None:
    readings = [_reading("Temperature", float(i), i) for i in range(60)]
    random.Random(7).shuffle(readings)
    aggregator = _chart(StubFetcher(readings))

    asyncio.run(aggregator.run_tick())

    stored = aggregator.history.get("Temperature")
    assert len(stored) == 50
    assert [r.value for r in stored] == [float(i) for i in range(10, 60)]


def test_chart_tick_leaves_absent_kinds_untouched() -> None:
    aggregator = _chart(
        StubFetcher(
            [_reading("Temperature", 1.0), _reading("Moisture", 2.0)],
            [_reading("Temperature", 5.0, 10)],
        )
    )

    asyncio.run(aggregator.run_tick())
    asyncio.run(aggregator.run_tick())

    assert [r.value for r in aggregator.history.get("Temperature")] == [5.0]
    assert [r.value for r in aggregator.history.get("Moisture")] == [2.0]


def test_chart_tick_stamps_last_updated_with_wall_clock() -> None:
    aggregator = _chart(StubFetcher([_reading("Temperature", 1.0)]))
    before = datetime.now(timezone.utc)

    asyncio.run(aggregator.run_tick())

    last_updated = aggregator.status.snapshot().last_updated
    assert last_updated is not None
    assert before <= last_updated <= datetime.now(timezone.utc)


def test_chart_tick_failure_keeps_previous_window() -> None:
    window = [_reading("Moisture", 1.0)]
    aggregator = _chart(StubFetcher(window, HttpStatusError(500, "Internal Server Error")))

    asyncio.run(aggregator.run_tick())
    asyncio.run(aggregator.run_tick())

    assert aggregator.history.get("Moisture") == window
    assert "500" in (aggregator.status.snapshot().error or "")


def _http_fetcher(handler) -> SensorFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SensorFetcher("http://sensors.test/get-data", client=client)


def test_end_to_end_live_tick_over_http() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json=[
                {"label": "Temperature", "value": 36.6, "timestamp": "2025-01-01T10:00:00Z"},
                {"label": "Moisture", "value": 42, "timestamp": "2025-01-01T10:00:05Z"},
            ],
        )

    async def run() -> LiveAggregator:
        fetcher = _http_fetcher(handler)
        aggregator = _live(fetcher)
        await aggregator.run_tick()
        await fetcher.aclose()
        return aggregator

    aggregator = asyncio.run(run())

    temperature = aggregator.history.get("Temperature")
    moisture = aggregator.history.get("Moisture")
    assert [r.value for r in temperature] == [36.6]
    assert [r.value for r in moisture] == [42.0]
    assert aggregator.status.snapshot().last_updated == datetime(
        2025, 1, 1, 10, 0, 5, tzinfo=timezone.utc
    )


def test_end_to_end_http_error_sets_error_state() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    async def run() -> LiveAggregator:
        fetcher = _http_fetcher(handler)
        aggregator = _live(fetcher)
        aggregator.history.append("Temperature", _reading("Temperature", 1.0))
        await aggregator.run_tick()
        await fetcher.aclose()
        return aggregator

    aggregator = asyncio.run(run())

    assert "500" in (aggregator.status.snapshot().error or "")
    assert [r.value for r in aggregator.history.get("Temperature")] == [1.0]
    assert aggregator.history.get("Moisture") == []


def test_out_of_range_fields_do_not_drop_the_batch() -> None:
    body = (
        '[{"label": "Temperature", "value": 36.6, "timestamp": "2025-01-01T10:00:00Z"},'
        ' {"label": "Moisture", "value": 1' + "0" * 400 + ', "timestamp": "2025-01-01T10:00:05Z"},'
        ' {"label": "Temperature", "value": 1.0, "timestamp": "9999-12-31T23:59:59-01:00"}]'
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body.encode("utf-8"))

    async def run() -> LiveAggregator:
        fetcher = _http_fetcher(handler)
        aggregator = _live(fetcher)
        await aggregator.run_tick()
        await fetcher.aclose()
        return aggregator

    aggregator = asyncio.run(run())

    assert aggregator.status.snapshot().error is None
    assert len(aggregator.history.get("Temperature")) == 1
    assert [r.value for r in aggregator.history.get("Moisture")] == [float("inf")]
