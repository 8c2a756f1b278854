from abc import ABC, abstractmethod
from dataclasses import dataclass

from weatherdash.models.weather import TemperatureUnit, WeatherData


@dataclass(frozen=True)
class ProviderHealth:
    healthy: bool
    message: str | None = None


class WeatherProvider(ABC):
    """Abstract base class for weather providers (Open-Meteo, demo, etc.)"""

    name: str

    @abstractmethod
    async def fetch_weather(
        self,
        lat: float,
        lon: float,
        unit: TemperatureUnit,
        timeout_seconds: float,
    ) -> WeatherData:
        """
        Fetch current, hourly and daily weather for a location

        Args:
            lat: Latitude in degrees
            lon: Longitude in degrees
            unit: Temperature unit for every temperature field
            timeout_seconds: Upper bound for the whole fetch

        Returns:
            Weather data in the canonical shape

        Raises:
            ProviderError: or one of its subclasses on any failure
        """
        pass

    @abstractmethod
    async def health_check(self) -> ProviderHealth:
        """
        Check if the provider is reachable

        Returns:
            Health result with a failure message when unhealthy
        """
        pass

    async def aclose(self) -> None:
        """Release any resources held by the provider"""
        return None
