"""
Infrastructure layer: External API clients with retry logic.

Responses are decoded into typed models at this boundary so the rest of
the application never handles raw JSON.
"""
import asyncio
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from bloomglobe.config import settings
from bloomglobe.domain.models import ClimateReading, TLERecord
from bloomglobe.infrastructure.api_constants import (
    APIConstants,
    PowerAPIEndpoints,
    TLEAPIEndpoints,
)

logger = logging.getLogger(__name__)


# Pydantic models for API responses
class PowerProperties(BaseModel):
    """'properties' block of a NASA POWER point response."""
    parameter: Dict[str, Dict[str, float]]


class PowerResponse(BaseModel):
    """Response from the NASA POWER daily point endpoint."""
    properties: PowerProperties


class TLEResponse(BaseModel):
    """Response from the primary TLE lookup API."""
    satellite_id: int = Field(alias="satelliteId")
    name: str = ""
    line1: str
    line2: str

    class Config:
        populate_by_name = True


class ExternalAPIError(Exception):
    """Custom exception for external API errors."""

    def __init__(self, message: str, status_code: int = 502):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class BaseAPIClient:
    """
    Shared HTTP plumbing for the external API clients.
    Implements retry logic with exponential backoff.
    """

    def __init__(self, base_url: str, timeout: Optional[float] = None):
        """
        Initialize the HTTP client.

        Args:
            base_url: Base URL of the remote service
            timeout: Request timeout in seconds
        """
        self.base_url = base_url
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"accept": APIConstants.CONTENT_TYPE_JSON},
            timeout=timeout or settings.http_timeout,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.RequestError)),
        reraise=True,
    )
    async def _send(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        response = await self.client.request(method, endpoint, **kwargs)
        # Retry on server errors (5xx)
        if response.status_code >= 500:
            response.raise_for_status()
        return response

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> httpx.Response:
        """
        Make an HTTP request with retry logic.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            **kwargs: Additional arguments for the request

        Returns:
            The successful response

        Raises:
            ExternalAPIError: If the request fails after retries
        """
        try:
            response = await self._send(method, endpoint, **kwargs)
        except httpx.HTTPStatusError as e:
            raise ExternalAPIError(
                f"API request failed: {e.response.status_code} - {e.response.text}"
            ) from e
        except httpx.RequestError as e:
            raise ExternalAPIError(f"API request error: {str(e)}") from e

        # Don't retry on client errors (4xx)
        if response.is_error:
            raise ExternalAPIError(
                f"API request failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        return response

    async def _get_json(self, endpoint: str, **kwargs) -> Dict[str, Any]:
        response = await self._make_request("GET", endpoint, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise ExternalAPIError(f"Invalid JSON from {endpoint}: {str(e)}") from e


class WeatherAPIClient(BaseAPIClient):
    """Client for the NASA POWER daily point climate API."""

    # Substituted when POWER reports its fill value for a parameter
    DEFAULTS = {
        "T2M": 15.0,
        "PRECTOTCORR": 0.0,
        "RH2M": 50.0,
        "ALLSKY_SFC_SW_DWN": 20.0,
    }

    def __init__(self, base_url: Optional[str] = None):
        super().__init__(base_url or settings.weather_api_base_url)

    async def get_daily_climate(
        self,
        latitude: float,
        longitude: float,
        day: date,
    ) -> ClimateReading:
        """
        Fetch the climate reading for one location and day.

        Args:
            latitude: Latitude in degrees
            longitude: Longitude in degrees
            day: Day of the observation

        Returns:
            ClimateReading instance

        Raises:
            ExternalAPIError: If the request fails or the payload is malformed
        """
        stamp = day.strftime("%Y%m%d")
        data = await self._get_json(
            PowerAPIEndpoints.DAILY_POINT,
            params=PowerAPIEndpoints.daily_point_params(latitude, longitude, stamp, stamp),
        )

        try:
            parameters = PowerResponse(**data).properties.parameter
        except (ValidationError, TypeError) as e:
            raise ExternalAPIError(f"Unexpected weather API payload: {str(e)}") from e

        temperatures = parameters.get("T2M") or {}
        if not temperatures:
            raise ExternalAPIError("Weather API returned no temperature series")
        latest = sorted(temperatures)[-1]

        def value(name: str) -> float:
            raw = (parameters.get(name) or {}).get(latest)
            if raw is None or raw <= PowerAPIEndpoints.FILL_VALUE:
                return self.DEFAULTS[name]
            return float(raw)

        return ClimateReading(
            latitude=latitude,
            longitude=longitude,
            temperature=value("T2M"),
            precipitation=value("PRECTOTCORR"),
            humidity=value("RH2M"),
            solar_radiation=value("ALLSKY_SFC_SW_DWN"),
            date=datetime.strptime(latest, "%Y%m%d").date().isoformat(),
        )


class TLEClient(BaseAPIClient):
    """
    Client for two-line element lookups.
    Uses the JSON TLE API first and CelesTrak's text format as fallback.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        fallback_base_url: Optional[str] = None,
    ):
        super().__init__(base_url or settings.tle_api_base_url)
        self.fallback = BaseAPIClient(fallback_base_url or settings.celestrak_base_url)

    async def close(self):
        await super().close()
        await self.fallback.close()

    async def get_tle(self, norad_id: int) -> Optional[TLERecord]:
        """
        Fetch the current TLE for a satellite.

        Args:
            norad_id: NORAD catalog number

        Returns:
            TLERecord, or None if both sources fail
        """
        try:
            data = await self._get_json(TLEAPIEndpoints.get_tle(norad_id))
            response = TLEResponse(**data)
            logger.info(f"TLE data fetched for {response.name} ({norad_id})")
            return TLERecord(
                norad_id=norad_id,
                name=response.name,
                line1=response.line1,
                line2=response.line2,
            )
        except (ExternalAPIError, ValidationError, TypeError) as e:
            logger.warning(f"Failed to fetch TLE for NORAD {norad_id}: {str(e)}")

        try:
            response = await self.fallback._make_request(
                "GET",
                TLEAPIEndpoints.CELESTRAK_GP,
                params=TLEAPIEndpoints.celestrak_params(norad_id),
            )
            return self.parse_tle_text(norad_id, response.text)
        except ExternalAPIError as e:
            logger.error(f"Fallback TLE fetch also failed for NORAD {norad_id}: {str(e)}")
            return None

    async def get_many(self, norad_ids: List[int]) -> Dict[int, TLERecord]:
        """Fetch TLEs for several satellites concurrently."""
        results = await asyncio.gather(*(self.get_tle(i) for i in norad_ids))
        return {
            norad_id: tle
            for norad_id, tle in zip(norad_ids, results)
            if tle is not None
        }

    @staticmethod
    def parse_tle_text(norad_id: int, text: str) -> Optional[TLERecord]:
        """
        Parse a three-line (name, line 1, line 2) TLE block.

        Args:
            norad_id: NORAD catalog number
            text: Raw response body

        Returns:
            TLERecord, or None if the block is incomplete
        """
        lines = [line.strip() for line in text.strip().splitlines() if line.strip()]
        if len(lines) < 3:
            return None
        return TLERecord(norad_id=norad_id, name=lines[0], line1=lines[1], line2=lines[2])


# Singleton instances
_weather_client: Optional[WeatherAPIClient] = None
_tle_client: Optional[TLEClient] = None


def get_weather_client() -> WeatherAPIClient:
    """
    Get or create the singleton weather API client instance.

    Returns:
        WeatherAPIClient instance
    """
    global _weather_client
    if _weather_client is None:
        _weather_client = WeatherAPIClient()
    return _weather_client


def get_tle_client() -> TLEClient:
    """
    Get or create the singleton TLE client instance.

    Returns:
        TLEClient instance
    """
    global _tle_client
    if _tle_client is None:
        _tle_client = TLEClient()
    return _tle_client


async def close_api_clients() -> None:
    """Close and forget every singleton client."""
    global _weather_client, _tle_client
    for client in (_weather_client, _tle_client):
        if client is not None:
            await client.close()
    _weather_client = None
    _tle_client = None
