import asyncio
import httpx
import logging
import time
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from wallbox_stats.domain.exceptions import DecodeError, FetchTimeoutError, MeterError, TransportError
from wallbox_stats.domain.measurements import MeterReading

logger = logging.getLogger(__name__)

# Hard deadline for one meter request, including decoding the body
METER_TIMEOUT = 10.0


class MeterPayload(BaseModel):
    """
    Body of the meter endpoint.
    Format: {"Time": "...", "Measurand": {"primary": {"p": 12000.0, "e": 1.5}, ...}}
    """

    time: Optional[datetime] = Field(default=None, alias="Time")
    measurand: dict[str, dict[str, float]] = Field(alias="Measurand")

    def to_reading(self) -> MeterReading:
        # Only the active power "p" is used, meters without it are skipped
        meters = {name: values["p"] for name, values in self.measurand.items() if "p" in values}
        return MeterReading(timestamp=self.time, meters=meters)


class HttpMeterAdapter:
    def __init__(self, url: str, timeout: float = METER_TIMEOUT):
        self.url = url
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def fetch(self) -> MeterReading:
        """
        Fetch the meter values, giving up after `timeout` seconds.
        A request still running at the deadline is cancelled and its result discarded.
        """
        start = time.monotonic()
        try:
            reading = await asyncio.wait_for(self._read(), timeout=self.timeout)
        except MeterError:
            raise
        except asyncio.TimeoutError:
            raise FetchTimeoutError(f"timeout during receive data from {self.url}") from None

        logger.debug(f"Runtime to request meter data: {time.monotonic() - start:.3f}s")
        return reading

    async def _read(self) -> MeterReading:
        client = self._get_client()

        logger.debug(f"Performing http get: {self.url}")
        try:
            response = await client.get(self.url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(f"timeout during receive data from {self.url}: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"meter request to {self.url} failed: {e}") from e

        try:
            # json errors and pydantic validation errors are both ValueErrors
            payload = MeterPayload.model_validate(response.json())
        except ValueError as e:
            raise DecodeError(f"invalid meter payload from {self.url}: {e}") from e

        return payload.to_reading()
