import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from weatherdash.config.settings import Settings
from weatherdash.models.weather import TemperatureUnit, WeatherData
from weatherdash.providers.weather.base import ProviderHealth, WeatherProvider
from weatherdash.utils.exceptions import (
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)

logger = logging.getLogger(__name__)

CURRENT_FIELDS = [
    "temperature_2m",
    "weather_code",
    "wind_speed_10m",
    "wind_direction_10m",
    "relative_humidity_2m",
    "apparent_temperature",
    "precipitation",
]
HOURLY_FIELDS = [
    "temperature_2m",
    "weather_code",
    "precipitation",
    "relative_humidity_2m",
]
DAILY_FIELDS = [
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
    "precipitation_probability_max",
]


class OpenMeteoProvider(WeatherProvider):
    """
    Live weather provider backed by the Open-Meteo forecast API
    """

    name = "open-meteo"

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self.client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.weather_api_timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                headers={"User-Agent": self.settings.weather_api_user_agent},
            )
        return self.client

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    def _build_params(
        self, lat: float, lon: float, unit: TemperatureUnit
    ) -> dict[str, str]:
        return {
            "latitude": str(lat),
            "longitude": str(lon),
            "current": ",".join(CURRENT_FIELDS),
            "hourly": ",".join(HOURLY_FIELDS),
            "daily": ",".join(DAILY_FIELDS),
            "temperature_unit": unit.value,
            "wind_speed_unit": "kmh",
            "precipitation_unit": "mm",
            "timezone": "auto",
            "forecast_days": "7",
            "forecast_hours": "24",
        }

    async def fetch_weather(
        self,
        lat: float,
        lon: float,
        unit: TemperatureUnit,
        timeout_seconds: float,
    ) -> WeatherData:
        """Fetch and normalize weather for a location from Open-Meteo"""
        logger.info(f"Fetching weather data for ({lat}, {lon}) in {unit.value}")

        try:
            response = await asyncio.wait_for(
                self._get_client().get(
                    str(self.settings.weather_api_url),
                    params=self._build_params(lat, lon, unit),
                ),
                timeout=timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"Open-Meteo request timed out for ({lat}, {lon})")
            raise ProviderTimeoutError(timeout_seconds) from e
        except httpx.RequestError as e:
            logger.error(f"Open-Meteo request error for ({lat}, {lon}): {e}")
            raise ProviderError("Failed to fetch weather data", str(e)) from e

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise ProviderRateLimitError(
                int(retry_after) if retry_after and retry_after.isdigit() else None
            )
        if not response.is_success:
            logger.error(f"Open-Meteo returned status {response.status_code}")
            raise ProviderError(
                "Failed to fetch weather data",
                f"HTTP {response.status_code}: {response.reason_phrase}",
            )

        return self._parse_response(response)

    def _parse_response(self, response: httpx.Response) -> WeatherData:
        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Failed to parse Open-Meteo JSON response: {e}")
            raise ProviderError("Failed to fetch weather data", f"Invalid JSON: {e}") from e

        try:
            return self.transform_response(data)
        except (KeyError, TypeError, ValidationError) as e:
            logger.error(f"Failed to parse Open-Meteo weather data: {e}")
            raise ProviderError(
                "Failed to parse weather data", f"{type(e).__name__}: {e}"
            ) from e

    @staticmethod
    def transform_response(data: dict[str, Any]) -> WeatherData:
        """Rename Open-Meteo fields into the canonical WeatherData shape"""
        current = data["current"]
        hourly = data["hourly"]
        daily = data["daily"]

        return WeatherData.model_validate(
            {
                "current": {
                    "temperature": current["temperature_2m"],
                    "weather_code": current["weather_code"],
                    "wind_speed": current["wind_speed_10m"],
                    "wind_direction": current["wind_direction_10m"],
                    "humidity": current["relative_humidity_2m"],
                    "apparent_temperature": current["apparent_temperature"],
                    "precipitation": current["precipitation"],
                    "time": current["time"],
                },
                "hourly": {
                    "time": hourly["time"],
                    "temperature": hourly["temperature_2m"],
                    "weather_code": hourly["weather_code"],
                    "precipitation": hourly["precipitation"],
                    "humidity": hourly["relative_humidity_2m"],
                },
                "daily": {
                    "time": daily["time"],
                    "weather_code": daily["weather_code"],
                    "temperature_max": daily["temperature_2m_max"],
                    "temperature_min": daily["temperature_2m_min"],
                    "precipitation_sum": daily["precipitation_sum"],
                    "precipitation_probability": daily["precipitation_probability_max"],
                },
            }
        )

    async def health_check(self) -> ProviderHealth:
        """Perform health check by making a minimal forecast request"""
        params = {"latitude": "0", "longitude": "0", "current": "temperature_2m"}
        try:
            response = await asyncio.wait_for(
                self._get_client().get(str(self.settings.weather_api_url), params=params),
                timeout=self.settings.health_check_timeout,
            )
        except (asyncio.TimeoutError, httpx.HTTPError) as e:
            logger.error(f"Health check failed: {e!r}")
            return ProviderHealth(healthy=False, message=str(e) or type(e).__name__)

        if not response.is_success:
            return ProviderHealth(
                healthy=False, message=f"HTTP {response.status_code}"
            )
        return ProviderHealth(healthy=True)
