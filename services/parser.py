"""Conversion of raw endpoint records into :class:`SensorReading` objects.

Parsing is deliberately lossy: a malformed field degrades to a sentinel
(``nan`` for values, the current time for timestamps) so that one bad field
never rejects the reading or the batch it arrived in.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Mapping

from models.records import SensorReading

logger = logging.getLogger(__name__)

MISSING_LABEL = "-"


def parse_reading(record: Mapping[str, Any]) -> SensorReading:
    """Build a reading from one decoded JSON object. Never raises."""
    raw_label = record.get("label")
    label = MISSING_LABEL if raw_label is None else str(raw_label)
    return SensorReading(
        kind=label,
        value=parse_value(record.get("value")),
        observed_at=parse_observed_at(record.get("timestamp")),
    )


def parse_value(raw: Any) -> float:
    # bool is an int subclass but JSON true/false is not a measurement
    if isinstance(raw, bool):
        return _invalid_value(raw)
    if isinstance(raw, (int, float)):
        try:
            return float(raw)
        except OverflowError:
            # integers beyond float range saturate like an IEEE conversion
            return math.inf if raw > 0 else -math.inf
    if isinstance(raw, str):
        try:
            return float(raw.strip())
        except ValueError:
            return _invalid_value(raw)
    return _invalid_value(raw)


def parse_observed_at(raw: Any) -> datetime:
    candidate = "" if raw is None else str(raw).strip()
    try:
        # naive datetimes are taken as local time by astimezone()
        return _parse_timestamp(candidate).astimezone()
    except (ValueError, OverflowError):
        logger.debug(
            "Unparseable timestamp, substituting current time",
            extra={"invalid_value": candidate or None},
        )
        return datetime.now().astimezone()


def _parse_timestamp(value: str) -> datetime:
    if not value:
        raise ValueError("Timestamp is empty.")

    candidate = value
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"

    try:
        return datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc


def _invalid_value(raw: Any) -> float:
    logger.debug("Unparseable reading value", extra={"invalid_value": repr(raw)})
    return math.nan
