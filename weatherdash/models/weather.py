from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_core import PydanticCustomError


class TemperatureUnit(str, Enum):
    """Temperature units supported by the providers"""

    CELSIUS = "celsius"
    FAHRENHEIT = "fahrenheit"


class WeatherErrorCode(str, Enum):
    """Machine-readable error codes returned to API clients"""

    INVALID_REQUEST = "INVALID_REQUEST"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"


class WeatherRequest(BaseModel):
    """Weather API request model"""

    lat: float = Field(..., allow_inf_nan=False, description="Latitude in degrees")
    lon: float = Field(..., allow_inf_nan=False, description="Longitude in degrees")
    unit: TemperatureUnit = Field(
        default=TemperatureUnit.CELSIUS, description="Temperature unit"
    )

    @field_validator("lat")
    @classmethod
    def check_latitude(cls, value: float) -> float:
        if not -90 <= value <= 90:
            raise PydanticCustomError(
                "latitude_range", "Latitude must be between -90 and 90"
            )
        return value

    @field_validator("lon")
    @classmethod
    def check_longitude(cls, value: float) -> float:
        if not -180 <= value <= 180:
            raise PydanticCustomError(
                "longitude_range", "Longitude must be between -180 and 180"
            )
        return value


class _WireModel(BaseModel):
    """Base for payload models serialized with camelCase keys"""

    model_config = ConfigDict(populate_by_name=True)


class CurrentWeather(_WireModel):
    """Current conditions at the requested location"""

    temperature: float
    weather_code: int = Field(..., alias="weatherCode", ge=0, le=99)
    wind_speed: float = Field(..., alias="windSpeed", ge=0)
    wind_direction: float = Field(..., alias="windDirection", ge=0, le=360)
    humidity: float = Field(..., ge=0, le=100)
    apparent_temperature: float = Field(..., alias="apparentTemperature")
    precipitation: float = Field(..., ge=0)
    time: str


class _ParallelArrays(_WireModel):
    """Forecast made of equally sized per-slot arrays"""

    @model_validator(mode="after")
    def check_array_lengths(self):
        lengths = {
            name: len(getattr(self, name)) for name in type(self).model_fields
        }
        if len(set(lengths.values())) > 1:
            summary = ", ".join(f"{name}={size}" for name, size in lengths.items())
            raise PydanticCustomError(
                "array_length_mismatch",
                "Forecast arrays must share one length, got {lengths}",
                {"lengths": summary},
            )
        return self


class HourlyForecast(_ParallelArrays):
    """Hour-by-hour forecast"""

    time: list[str]
    temperature: list[float]
    weather_code: list[int] = Field(..., alias="weatherCode")
    precipitation: list[float]
    humidity: list[float]

    @field_validator("weather_code")
    @classmethod
    def check_weather_codes(cls, value: list[int]) -> list[int]:
        return _check_range(value, 0, 99, "weather code")

    @field_validator("precipitation")
    @classmethod
    def check_precipitation(cls, value: list[float]) -> list[float]:
        return _check_range(value, 0, None, "precipitation")

    @field_validator("humidity")
    @classmethod
    def check_humidity(cls, value: list[float]) -> list[float]:
        return _check_range(value, 0, 100, "humidity")


class DailyForecast(_ParallelArrays):
    """Day-by-day forecast"""

    time: list[str]
    weather_code: list[int] = Field(..., alias="weatherCode")
    temperature_max: list[float] = Field(..., alias="temperatureMax")
    temperature_min: list[float] = Field(..., alias="temperatureMin")
    precipitation_sum: list[float] = Field(..., alias="precipitationSum")
    precipitation_probability: list[float] = Field(
        ..., alias="precipitationProbability"
    )

    @field_validator("weather_code")
    @classmethod
    def check_weather_codes(cls, value: list[int]) -> list[int]:
        return _check_range(value, 0, 99, "weather code")

    @field_validator("precipitation_sum")
    @classmethod
    def check_precipitation_sum(cls, value: list[float]) -> list[float]:
        return _check_range(value, 0, None, "precipitation sum")

    @field_validator("precipitation_probability")
    @classmethod
    def check_precipitation_probability(cls, value: list[float]) -> list[float]:
        return _check_range(value, 0, 100, "precipitation probability")


def _check_range(
    values: list, minimum: float, maximum: float | None, label: str
) -> list:
    for index, value in enumerate(values):
        if value < minimum or (maximum is not None and value > maximum):
            if maximum is None:
                bound = f"at least {minimum}"
            else:
                bound = f"between {minimum} and {maximum}"
            raise PydanticCustomError(
                "value_out_of_range",
                "{label} at index {index} must be {bound}",
                {"label": label, "index": index, "bound": bound},
            )
    return values


class WeatherData(_WireModel):
    """Canonical, vendor-agnostic weather payload"""

    current: CurrentWeather
    hourly: HourlyForecast
    daily: DailyForecast

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class WeatherError(BaseModel):
    """Structured error object returned to API clients"""

    error: str = Field(..., description="Human-readable message")
    code: WeatherErrorCode = Field(..., description="Machine-readable error code")
    details: str | None = Field(None, description="Additional error details")


class WeatherSuccessResponse(BaseModel):
    """Envelope of a successful weather response"""

    success: Literal[True]
    data: WeatherData


class WeatherErrorResponse(BaseModel):
    """Envelope of a failed weather response"""

    success: Literal[False]
    error: WeatherError
