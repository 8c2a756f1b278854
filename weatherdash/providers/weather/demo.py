import asyncio
import logging
import math
import random
from dataclasses import dataclass
from datetime import datetime, timedelta

from weatherdash.models.weather import (
    CurrentWeather,
    DailyForecast,
    HourlyForecast,
    TemperatureUnit,
    WeatherData,
)
from weatherdash.providers.weather.base import ProviderHealth, WeatherProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DemoProfile:
    name: str
    base_temp_celsius: float
    base_temp_fahrenheit: float
    weather_code: int
    humidity: float
    wind_speed: float

    def base_temp(self, unit: TemperatureUnit) -> float:
        if unit == TemperatureUnit.FAHRENHEIT:
            return self.base_temp_fahrenheit
        return self.base_temp_celsius


DEMO_LOCATIONS: dict[str, DemoProfile] = {
    "51.51,-0.13": DemoProfile("London", 12, 54, 3, 78, 15),
    "40.71,-74.01": DemoProfile("New York", 18, 64, 1, 62, 12),
    "35.68,139.65": DemoProfile("Tokyo", 22, 72, 2, 70, 8),
    "48.86,2.35": DemoProfile("Paris", 15, 59, 61, 75, 10),
    "-33.87,151.21": DemoProfile("Sydney", 25, 77, 0, 55, 18),
}

DEFAULT_PROFILE = DemoProfile("Default", 20, 68, 1, 65, 10)

HOURS = 24
DAYS = 7


def location_key(lat: float, lon: float) -> str:
    return f"{lat:.2f},{lon:.2f}"


def _round1(value: float) -> float:
    return round(value * 10) / 10


class DemoProvider(WeatherProvider):
    """
    Offline provider producing deterministic synthetic weather.

    Known reference coordinates map to a fixed profile and anything else uses
    the default profile. Only wind direction and hourly precipitation are
    randomized, and a short random delay stands in for network latency.
    """

    name = "demo"

    def __init__(
        self,
        min_delay_seconds: float = 0.2,
        max_delay_seconds: float = 0.5,
        rng: random.Random | None = None,
    ):
        self.min_delay_seconds = min_delay_seconds
        self.max_delay_seconds = max_delay_seconds
        self._rng = rng or random.Random()

    async def fetch_weather(
        self,
        lat: float,
        lon: float,
        unit: TemperatureUnit,
        timeout_seconds: float = 10,
    ) -> WeatherData:
        delay = self._rng.uniform(self.min_delay_seconds, self.max_delay_seconds)
        if delay > 0:
            await asyncio.sleep(delay)

        profile = DEMO_LOCATIONS.get(location_key(lat, lon), DEFAULT_PROFILE)
        base_temp = profile.base_temp(unit)
        now = datetime.now().astimezone()

        logger.debug(f"Generating demo weather for {profile.name} in {unit.value}")

        current = CurrentWeather(
            temperature=base_temp,
            weather_code=profile.weather_code,
            wind_speed=profile.wind_speed,
            wind_direction=180 + self._rng.randrange(90),
            humidity=profile.humidity,
            apparent_temperature=base_temp - 2,
            precipitation=0.5 if profile.weather_code >= 60 else 0,
            time=now.strftime("%Y-%m-%dT%H:%M"),
        )

        return WeatherData(
            current=current,
            hourly=self._hourly_forecast(now, base_temp, profile.weather_code),
            daily=self._daily_forecast(now, base_temp, profile.weather_code, unit),
        )

    def _hourly_forecast(
        self, now: datetime, base_temp: float, weather_code: int
    ) -> HourlyForecast:
        start = now.replace(minute=0, second=0, microsecond=0)
        times, temperatures, codes, precipitation, humidity = [], [], [], [], []

        for i in range(HOURS):
            slot = start + timedelta(hours=i)
            times.append(slot.strftime("%Y-%m-%dT%H:%M"))

            variation = math.sin((slot.hour - 6) * math.pi / 12) * 4
            temperatures.append(_round1(base_temp + variation))

            codes.append((weather_code + 1) % 4 if i % 8 == 0 else weather_code)

            if weather_code >= 60:
                precipitation.append(_round1(self._rng.random() * 2))
            else:
                precipitation.append(0.0)

            # Humidity falls as the day warms up
            humidity.append(round(65 - variation * 2))

        return HourlyForecast(
            time=times,
            temperature=temperatures,
            weather_code=codes,
            precipitation=precipitation,
            humidity=humidity,
        )

    def _daily_forecast(
        self,
        now: datetime,
        base_temp: float,
        weather_code: int,
        unit: TemperatureUnit,
    ) -> DailyForecast:
        variance = 3 if unit == TemperatureUnit.CELSIUS else 5
        rainy = weather_code >= 60
        times, codes, maxima, minima, sums, probabilities = [], [], [], [], [], []

        for i in range(DAYS):
            times.append((now + timedelta(days=i)).strftime("%Y-%m-%d"))
            codes.append((weather_code + i) % 4)

            variation = math.sin(i * math.pi / DAYS) * variance
            maxima.append(_round1(base_temp + 5 + variation))
            minima.append(_round1(base_temp - 5 + variation))

            if rainy:
                sums.append(float(max(0, (5 - i) * 2)))
                probabilities.append(float(max(10, 70 - i * 10)))
            else:
                sums.append(0.0)
                probabilities.append(float(max(0, 20 - i * 3)))

        return DailyForecast(
            time=times,
            weather_code=codes,
            temperature_max=maxima,
            temperature_min=minima,
            precipitation_sum=sums,
            precipitation_probability=probabilities,
        )

    async def health_check(self) -> ProviderHealth:
        return ProviderHealth(healthy=True)
