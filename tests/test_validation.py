import pytest

from weatherdash.models.weather import TemperatureUnit, WeatherData
from weatherdash.services.validation import (
    ensure_valid_weather_data,
    parse_weather_request,
    validate_weather_data,
    validate_weather_response,
)
from weatherdash.utils.exceptions import InvalidRequestError, ProviderError


class TestParseWeatherRequest:
    """Test suite for request parameter validation"""

    @pytest.mark.parametrize(
        "lat, lon, unit",
        [
            (-90, -180, "celsius"),
            (90, 180, "fahrenheit"),
            (0, 0, "celsius"),
            (51.5074, -0.1278, "fahrenheit"),
        ],
    )
    def test_accepts_coordinates_in_range(self, lat, lon, unit):
        """Test valid coordinates are accepted and the unit is resolved"""
        request = parse_weather_request({"lat": lat, "lon": lon, "unit": unit})

        assert request.lat == lat
        assert request.lon == lon
        assert request.unit == TemperatureUnit(unit)

    def test_coerces_strings_to_floats(self):
        """Test query string values are coerced to numbers"""
        request = parse_weather_request({"lat": "51.51", "lon": "-0.13"})

        assert request.lat == pytest.approx(51.51)
        assert request.lon == pytest.approx(-0.13)

    @pytest.mark.parametrize("params", [{}, {"unit": None}, {"unit": ""}])
    def test_unit_defaults_to_celsius(self, params):
        """Test a missing or empty unit falls back to celsius"""
        request = parse_weather_request({"lat": "10", "lon": "20", **params})

        assert request.unit is TemperatureUnit.CELSIUS

    def test_rejects_latitude_out_of_range(self):
        """Test latitude above 90 is rejected with a named bound"""
        with pytest.raises(InvalidRequestError) as exc_info:
            parse_weather_request({"lat": 91, "lon": 0})

        assert exc_info.value.field_errors == [
            "lat: Latitude must be between -90 and 90"
        ]

    def test_rejects_longitude_out_of_range(self):
        """Test longitude above 180 is rejected with a named bound"""
        with pytest.raises(InvalidRequestError) as exc_info:
            parse_weather_request({"lat": 0, "lon": 181})

        assert "Longitude must be between" in exc_info.value.details

    def test_rejects_non_numeric_values(self):
        """Test non-numeric coordinates fail validation"""
        with pytest.raises(InvalidRequestError) as exc_info:
            parse_weather_request({"lat": "invalid", "lon": "-0.13"})

        assert exc_info.value.field_errors[0].startswith("lat: ")

    @pytest.mark.parametrize("value", ["nan", "inf", "-inf"])
    def test_rejects_non_finite_values(self, value):
        """Test NaN and infinities never pass the range checks"""
        with pytest.raises(InvalidRequestError):
            parse_weather_request({"lat": value, "lon": "0"})

    def test_rejects_missing_coordinates(self):
        """Test both coordinates are required"""
        with pytest.raises(InvalidRequestError) as exc_info:
            parse_weather_request({"lat": None, "lon": None})

        fields = [error.split(":")[0] for error in exc_info.value.field_errors]
        assert fields == ["lat", "lon"]

    def test_rejects_unknown_unit(self):
        """Test units outside celsius/fahrenheit are rejected"""
        with pytest.raises(InvalidRequestError) as exc_info:
            parse_weather_request({"lat": 0, "lon": 0, "unit": "kelvin"})

        assert exc_info.value.field_errors[0].startswith("unit: ")

    def test_collects_every_field_error(self):
        """Test details join all field errors with semicolons"""
        with pytest.raises(InvalidRequestError) as exc_info:
            parse_weather_request({"lat": 100, "lon": -200, "unit": "kelvin"})

        error = exc_info.value
        assert len(error.field_errors) == 3
        assert error.details == "; ".join(error.field_errors)
        assert "lat: Latitude must be between -90 and 90" in error.details
        assert "lon: Longitude must be between -180 and 180" in error.details


class TestValidateWeatherData:
    """Test suite for outbound payload validation"""

    def test_valid_payload_has_no_errors(self, sample_weather_data):
        """Test a well-formed payload passes"""
        assert validate_weather_data(sample_weather_data) == []
        assert validate_weather_data(sample_weather_data.to_wire()) == []

    def test_missing_section_is_reported(self, sample_weather_data):
        """Test a payload without its daily section fails"""
        payload = sample_weather_data.to_wire()
        del payload["daily"]

        errors = validate_weather_data(payload)

        assert errors == ["daily: Field required"]

    def test_out_of_range_humidity_is_reported(self, sample_weather_data):
        """Test numeric ranges are enforced"""
        payload = sample_weather_data.to_wire()
        payload["current"]["humidity"] = 120

        errors = validate_weather_data(payload)

        assert len(errors) == 1
        assert errors[0].startswith("current.humidity:")

    def test_array_length_mismatch_is_reported(self, sample_weather_data):
        """Test parallel forecast arrays must share one length"""
        payload = sample_weather_data.to_wire()
        payload["hourly"]["temperature"].append(16.0)

        errors = validate_weather_data(payload)

        assert len(errors) == 1
        assert errors[0].startswith("hourly:")
        assert "share one length" in errors[0]

    def test_negative_precipitation_is_reported(self, sample_weather_data):
        """Test forecast array items are range checked"""
        payload = sample_weather_data.to_wire()
        payload["daily"]["precipitationSum"] = [-2]

        errors = validate_weather_data(payload)

        assert errors == ["daily.precipitationSum: precipitation sum at index 0 must be at least 0"]

    def test_ensure_valid_raises_provider_error(self, sample_weather_data):
        """Test contract violations surface as provider errors"""
        broken = WeatherData.model_construct(
            current=sample_weather_data.current.model_copy(update={"humidity": 150}),
            hourly=sample_weather_data.hourly,
            daily=sample_weather_data.daily,
        )

        with pytest.raises(ProviderError) as exc_info:
            ensure_valid_weather_data(broken)

        assert exc_info.value.message == "Provider returned malformed data"
        assert "current.humidity" in exc_info.value.details

    def test_ensure_valid_returns_data(self, sample_weather_data):
        """Test valid data passes through unchanged"""
        assert ensure_valid_weather_data(sample_weather_data) is sample_weather_data


class TestValidateWeatherResponse:
    """Test suite for endpoint envelope validation"""

    def test_success_envelope(self, sample_weather_data):
        body = {"success": True, "data": sample_weather_data.to_wire()}
        assert validate_weather_response(body) == []

    def test_error_envelope(self):
        body = {
            "success": False,
            "error": {"error": "Too many requests", "code": "RATE_LIMITED"},
        }
        assert validate_weather_response(body) == []

    def test_unknown_error_code_is_rejected(self):
        body = {"success": False, "error": {"error": "Oops", "code": "BROKEN"}}
        assert validate_weather_response(body) != []
