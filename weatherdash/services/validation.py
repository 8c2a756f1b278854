"""
Request and payload validation for the weather endpoint.

Inbound query parameters are coerced into a WeatherRequest; outbound payloads
are checked against the WeatherData shape so a provider contract violation is
caught before it is cached or served.
"""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import TypeAdapter, ValidationError

from weatherdash.models.weather import (
    WeatherData,
    WeatherErrorResponse,
    WeatherRequest,
    WeatherSuccessResponse,
)
from weatherdash.utils.exceptions import InvalidRequestError, ProviderError

logger = logging.getLogger(__name__)

_response_adapter = TypeAdapter(WeatherSuccessResponse | WeatherErrorResponse)


def format_validation_errors(exc: ValidationError) -> list[str]:
    """Render pydantic errors as "field: message" strings"""
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"])
        messages.append(f"{field}: {error['msg']}" if field else error["msg"])
    return messages


def parse_weather_request(params: Mapping[str, Any]) -> WeatherRequest:
    """
    Coerce raw query parameters into a validated WeatherRequest.

    Missing values (None) are treated as absent and an empty unit falls back
    to celsius.

    Raises:
        InvalidRequestError: with one "field: message" entry per failure
    """
    raw = {key: value for key, value in params.items() if value is not None}
    if raw.get("unit") == "":
        raw.pop("unit")

    try:
        return WeatherRequest.model_validate(raw)
    except ValidationError as e:
        raise InvalidRequestError(format_validation_errors(e)) from e


def validate_weather_data(payload: WeatherData | Mapping[str, Any]) -> list[str]:
    """Check a weather payload against the canonical shape; empty means valid"""
    if isinstance(payload, WeatherData):
        payload = payload.to_wire()

    try:
        WeatherData.model_validate(payload)
    except ValidationError as e:
        return format_validation_errors(e)
    return []


def ensure_valid_weather_data(data: WeatherData) -> WeatherData:
    """
    Return data unchanged or raise ProviderError if it breaks the contract.

    WeatherData is already validated when it is built, so this only catches
    payloads mutated after construction (pydantic does not re-validate on
    assignment or in-place list edits).
    """
    errors = validate_weather_data(data)
    if errors:
        logger.error(f"Provider returned malformed weather data: {errors}")
        raise ProviderError("Provider returned malformed data", "; ".join(errors))
    return data


def validate_weather_response(body: Any) -> list[str]:
    """Check an endpoint response body against the success/error envelopes"""
    try:
        _response_adapter.validate_python(body)
    except ValidationError as e:
        return format_validation_errors(e)
    return []
