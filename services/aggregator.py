"""History-shaping policies applied to each batch of fetched readings."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List

from datastore.history import DashboardStatus, HistoryStore
from models.records import SensorReading, is_tracked_kind
from services.fetcher import FetchError, SensorFetcher

logger = logging.getLogger(__name__)


def tracked_readings(readings: Iterable[SensorReading]) -> List[SensorReading]:
    return [reading for reading in readings if is_tracked_kind(reading.kind)]


def latest_per_kind(readings: Iterable[SensorReading]) -> Dict[str, SensorReading]:
    """Keep the freshest reading per normalized kind; ties keep the first seen."""
    latest: Dict[str, SensorReading] = {}
    for reading in readings:
        kind = reading.normalized_kind
        previous = latest.get(kind)
        if previous is None or reading.observed_at > previous.observed_at:
            latest[kind] = reading
    return latest


def group_by_kind(readings: Iterable[SensorReading]) -> Dict[str, List[SensorReading]]:
    grouped: Dict[str, List[SensorReading]] = {}
    for reading in readings:
        grouped.setdefault(reading.normalized_kind, []).append(reading)
    return grouped


def recent_window(readings: Iterable[SensorReading], size: int) -> List[SensorReading]:
    """Sort ascending by observation time and keep the last ``size`` entries."""
    ordered = sorted(readings, key=lambda reading: reading.observed_at)
    return ordered[-size:] if size > 0 else []


class _PollingAggregator:
    tick_name = "tick"

    def __init__(
        self,
        fetcher: SensorFetcher,
        history: HistoryStore,
        status: DashboardStatus,
    ) -> None:
        self.fetcher = fetcher
        self.history = history
        self.status = status

    async def _fetch(self) -> List[SensorReading] | None:
        try:
            readings = await self.fetcher.fetch_readings()
        except FetchError as exc:
            logger.warning(
                "Fetch failed", extra={"tick": self.tick_name, "reason": str(exc)}
            )
            self.status.record_failure(str(exc))
            return None
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected fetch failure", extra={"tick": self.tick_name})
            self.status.record_failure(str(exc))
            return None
        return tracked_readings(readings)


class LiveAggregator(_PollingAggregator):
    """Appends the freshest reading per kind to an append-only history."""

    tick_name = "live"

    async def run_tick(self) -> Dict[str, SensorReading]:
        readings = await self._fetch()
        if readings is None:
            return {}

        try:
            latest = latest_per_kind(readings)
            for kind, reading in latest.items():
                self.history.append(kind, reading)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Live tick failed", extra={"tick": self.tick_name})
            self.status.record_failure(str(exc))
            return {}

        last_updated = (
            max(reading.observed_at for reading in latest.values()) if latest else None
        )
        self.status.record_success(last_updated)
        logger.debug(
            "Live tick applied",
            extra={"tick": self.tick_name, "reading_count": len(latest)},
        )
        return latest


class ChartAggregator(_PollingAggregator):
    """Replaces each kind's history with the most recent window of readings."""

    tick_name = "chart"

    async def run_tick(self) -> Dict[str, List[SensorReading]]:
        readings = await self._fetch()
        if readings is None:
            return {}

        try:
            windows = {
                kind: recent_window(group, self.history.limit)
                for kind, group in group_by_kind(readings).items()
            }
            for kind, window in windows.items():
                self.history.replace(kind, window)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Chart tick failed", extra={"tick": self.tick_name})
            self.status.record_failure(str(exc))
            return {}

        self.status.record_success(datetime.now().astimezone())
        logger.debug(
            "Chart tick applied",
            extra={
                "tick": self.tick_name,
                "reading_count": sum(len(window) for window in windows.values()),
            },
        )
        return windows
