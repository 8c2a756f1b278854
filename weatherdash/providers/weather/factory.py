import logging

from weatherdash.config.settings import Settings
from weatherdash.providers.weather.base import WeatherProvider

logger = logging.getLogger(__name__)


def create_weather_provider(settings: Settings) -> WeatherProvider:
    """Factory function to create the weather provider selected by settings"""
    if settings.weather_api_mode == "demo":
        from weatherdash.providers.weather.demo import DemoProvider

        logger.info("Creating demo weather provider")
        return DemoProvider(
            min_delay_seconds=settings.demo_delay_min_seconds,
            max_delay_seconds=settings.demo_delay_max_seconds,
        )

    elif settings.weather_api_mode == "live":
        from weatherdash.providers.weather.open_meteo import OpenMeteoProvider

        logger.info("Creating Open-Meteo weather provider")
        return OpenMeteoProvider(settings)

    else:
        raise ValueError(
            f"Unsupported weather API mode: {settings.weather_api_mode}. "
            "Supported modes: 'live', 'demo'"
        )
