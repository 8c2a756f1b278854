import pytest

from weatherdash.models.weather import WeatherData


class FakeClock:
    """Manually advanced replacement for time.time"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_weather_data():
    """Small but complete weather payload"""
    return WeatherData.model_validate(
        {
            "current": {
                "temperature": 15.5,
                "weatherCode": 3,
                "windSpeed": 12.5,
                "windDirection": 180,
                "humidity": 65,
                "apparentTemperature": 14.2,
                "precipitation": 0,
                "time": "2024-01-15T14:00",
            },
            "hourly": {
                "time": ["2024-01-15T14:00"],
                "temperature": [15.5],
                "weatherCode": [3],
                "precipitation": [0],
                "humidity": [65],
            },
            "daily": {
                "time": ["2024-01-15"],
                "weatherCode": [3],
                "temperatureMax": [18.5],
                "temperatureMin": [10.2],
                "precipitationSum": [0],
                "precipitationProbability": [10],
            },
        }
    )
