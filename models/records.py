"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Tuple

TEMPERATURE = "Temperature"
MOISTURE = "Moisture"

TRACKED_KINDS: Tuple[str, ...] = (TEMPERATURE, MOISTURE)

UNITS: Dict[str, str] = {
    TEMPERATURE: "°C",
    MOISTURE: "units",
}


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A single sensor reading returned by the remote endpoint."""

    kind: str
    value: float
    observed_at: datetime

    @property
    def normalized_kind(self) -> str:
        return normalize_kind(self.kind)


def normalize_kind(raw: str) -> str:
    """Capitalize the first letter and lowercase the rest (``"mOISTURE"`` -> ``"Moisture"``)."""
    if not raw:
        return raw
    lowered = raw.lower()
    return lowered[0].upper() + lowered[1:]


def is_tracked_kind(raw: str) -> bool:
    return normalize_kind(raw) in TRACKED_KINDS


def unit_for(kind: str) -> str:
    return UNITS.get(normalize_kind(kind), "")
