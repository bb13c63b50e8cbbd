from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Deque, Dict, Iterable, List, Optional, Sequence

from models.records import TRACKED_KINDS, SensorReading, normalize_kind


class HistoryStore:
    """Bounded per-kind reading history.

    Each kind holds at most ``limit`` readings; appending past the limit drops
    the oldest entries first. Readers always receive copies.
    """

    def __init__(self, name: str, limit: int, kinds: Iterable[str] = TRACKED_KINDS) -> None:
        if limit <= 0:
            raise ValueError("History limit must be positive.")
        self.name = name
        self.limit = limit
        self._series: Dict[str, Deque[SensorReading]] = {
            normalize_kind(kind): deque(maxlen=limit) for kind in kinds
        }
        self._lock = Lock()

    def append(self, kind: str, reading: SensorReading) -> int:
        """Append ``reading`` to ``kind`` and return the resulting length."""
        with self._lock:
            series = self._series_for(kind)
            series.append(reading)
            return len(series)

    def replace(self, kind: str, readings: Sequence[SensorReading]) -> None:
        with self._lock:
            series = self._series_for(kind)
            series.clear()
            # deque(maxlen) keeps the tail when given too many
            series.extend(readings)

    def get(self, kind: str) -> List[SensorReading]:
        with self._lock:
            series = self._series.get(normalize_kind(kind))
            return list(series) if series is not None else []

    def latest(self, kind: str) -> Optional[SensorReading]:
        with self._lock:
            series = self._series.get(normalize_kind(kind))
            if not series:
                return None
            return series[-1]

    def kinds(self) -> List[str]:
        with self._lock:
            return list(self._series)

    def snapshot(self) -> Dict[str, List[SensorReading]]:
        with self._lock:
            return {kind: list(series) for kind, series in self._series.items()}

    def _series_for(self, kind: str) -> Deque[SensorReading]:
        key = normalize_kind(kind)
        series = self._series.get(key)
        if series is None:
            series = deque(maxlen=self.limit)
            self._series[key] = series
        return series


@dataclass(frozen=True)
class StatusSnapshot:
    loading: bool
    error: Optional[str]
    last_updated: Optional[datetime]


class DashboardStatus:
    """Shared LastUpdated / error / loading flags written by the aggregators."""

    def __init__(self) -> None:
        self._loading = True
        self._error: Optional[str] = None
        self._last_updated: Optional[datetime] = None
        self._lock = Lock()

    def record_success(self, last_updated: Optional[datetime]) -> None:
        """Clear the error; ``None`` keeps the previous LastUpdated."""
        with self._lock:
            if last_updated is not None:
                self._last_updated = last_updated
            self._error = None
            self._loading = False

    def record_failure(self, message: str) -> None:
        with self._lock:
            self._error = message
            self._loading = False

    def snapshot(self) -> StatusSnapshot:
        with self._lock:
            return StatusSnapshot(
                loading=self._loading,
                error=self._error,
                last_updated=self._last_updated,
            )
