from .base import ProviderHealth, WeatherProvider
from .demo import DemoProvider
from .factory import create_weather_provider
from .open_meteo import OpenMeteoProvider

__all__ = [
    "ProviderHealth",
    "WeatherProvider",
    "DemoProvider",
    "OpenMeteoProvider",
    "create_weather_provider",
]
