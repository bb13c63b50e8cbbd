from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_ENDPOINT_URL_ENV = "SENSOR_ENDPOINT_URL"
_LIVE_INTERVAL_ENV = "LIVE_INTERVAL_SECONDS"
_CHART_INTERVAL_ENV = "CHART_INTERVAL_SECONDS"
_LIVE_LIMIT_ENV = "LIVE_HISTORY_LIMIT"
_CHART_LIMIT_ENV = "CHART_HISTORY_LIMIT"
_FETCH_TIMEOUT_ENV = "FETCH_TIMEOUT_SECONDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_ENDPOINT_URL = "https://majestic-minds-api.onrender.com/get-data"


@dataclass(frozen=True)
class Settings:
    endpoint_url: str
    live_interval: float
    chart_interval: float
    live_history_limit: int
    chart_history_limit: int
    fetch_timeout: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        endpoint_url=_read_str_env(_ENDPOINT_URL_ENV, DEFAULT_ENDPOINT_URL),
        live_interval=_read_positive_float(_LIVE_INTERVAL_ENV, 5.0),
        chart_interval=_read_positive_float(_CHART_INTERVAL_ENV, 10.0),
        live_history_limit=_read_positive_int(_LIVE_LIMIT_ENV, 200),
        chart_history_limit=_read_positive_int(_CHART_LIMIT_ENV, 50),
        fetch_timeout=_read_positive_float(_FETCH_TIMEOUT_ENV, 30.0),
        log_level=_read_log_level("INFO"),
    )
