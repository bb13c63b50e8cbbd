"""HTTP client for the remote sensor endpoint."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import List, Optional

import httpx

from models.records import SensorReading
from services.parser import parse_reading

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Base class for failures reaching or decoding the sensor endpoint."""


class NetworkError(FetchError):
    """The endpoint could not be reached."""


class HttpStatusError(FetchError):
    """The endpoint answered with a non-200 status."""

    def __init__(self, status_code: int, reason: str) -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"HTTP {status_code}: {reason}")


class DecodeError(FetchError):
    """The response body was not valid JSON."""


class SensorFetcher:
    """Performs one GET per call against the configured endpoint."""

    def __init__(
        self,
        endpoint_url: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.endpoint_url = endpoint_url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "SensorFetcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_readings(self) -> List[SensorReading]:
        start_time = time.perf_counter()
        try:
            response = await self._client.get(
                self.endpoint_url, headers={"Accept": "application/json"}
            )
        except httpx.TransportError as exc:
            raise NetworkError(f"Failed to reach {self.endpoint_url}: {exc}") from exc

        if response.status_code != 200:
            raise HttpStatusError(response.status_code, response.reason_phrase)

        try:
            body = response.json()
        except ValueError as exc:
            raise DecodeError(f"Response body is not valid JSON: {exc}") from exc

        if not isinstance(body, list):
            logger.info(
                "Endpoint returned a non-list payload; treating as empty",
                extra={"endpoint": self.endpoint_url},
            )
            return []

        readings: List[SensorReading] = []
        for element in body:
            if not isinstance(element, Mapping):
                logger.warning(
                    "Skipping element",
                    extra={"reason": "non-mapping element", "invalid_value": repr(element)},
                )
                continue
            readings.append(parse_reading(element))

        logger.debug(
            "Fetched sensor readings",
            extra={
                "endpoint": self.endpoint_url,
                "reading_count": len(readings),
                "elapsed_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return readings
