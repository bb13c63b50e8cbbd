"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from models.records import SensorReading, unit_for


class HistoryMode(str, Enum):
    """Which history a client wants to read."""

    live = "live"
    chart = "chart"


class ReadingOut(BaseModel):
    """A single reading as exposed to clients."""

    kind: str
    value: Optional[float] = Field(
        default=None, description="Measured value; null when the source value was unparseable."
    )
    unit: str = ""
    observed_at: datetime

    @classmethod
    def from_reading(cls, reading: SensorReading) -> "ReadingOut":
        value = reading.value if math.isfinite(reading.value) else None
        kind = reading.normalized_kind
        return cls(kind=kind, value=value, unit=unit_for(kind), observed_at=reading.observed_at)


class SensorSummary(BaseModel):
    kind: str
    unit: str
    latest: Optional[ReadingOut] = None
    live_count: int = Field(..., ge=0)
    chart_count: int = Field(..., ge=0)


class DashboardSnapshot(BaseModel):
    """Everything a dashboard view needs to render one frame."""

    loading: bool
    error: Optional[str] = None
    last_updated: Optional[datetime] = None
    scheduler_running: bool
    sensors: List[SensorSummary] = Field(default_factory=list)
