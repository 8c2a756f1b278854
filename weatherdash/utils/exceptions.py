from weatherdash.models.weather import WeatherErrorCode


class WeatherAPIError(Exception):
    """Base exception for weather API related errors"""

    status_code = 500
    error_code = WeatherErrorCode.PROVIDER_ERROR

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.headers: dict[str, str] = {}
        self.rate_limit_remaining: int | None = None


class InvalidRequestError(WeatherAPIError):
    """Exception raised when request parameters fail validation"""

    status_code = 400
    error_code = WeatherErrorCode.INVALID_REQUEST

    def __init__(self, field_errors: list[str]):
        super().__init__("Invalid request parameters", "; ".join(field_errors))
        self.field_errors = field_errors


class RateLimitExceededError(WeatherAPIError):
    """Exception raised when a client exceeds its request quota"""

    status_code = 429
    error_code = WeatherErrorCode.RATE_LIMITED

    def __init__(self, retry_after: int):
        super().__init__(
            "Too many requests",
            f"Rate limit exceeded. Try again in {retry_after} seconds.",
        )
        self.retry_after = retry_after
        self.rate_limit_remaining = 0
        self.headers["Retry-After"] = str(retry_after)


class ProviderError(WeatherAPIError):
    """Exception raised when the upstream weather provider fails"""

    status_code = 502
    error_code = WeatherErrorCode.PROVIDER_ERROR


class ProviderTimeoutError(ProviderError):
    """Exception raised when the upstream request times out"""

    status_code = 504
    error_code = WeatherErrorCode.TIMEOUT

    def __init__(self, timeout_seconds: float):
        super().__init__(
            "Request timed out",
            f"Request exceeded {int(timeout_seconds * 1000)}ms timeout",
        )
        self.timeout_seconds = timeout_seconds


class ProviderRateLimitError(ProviderError):
    """Exception raised when the upstream provider rate limits us"""

    status_code = 429
    error_code = WeatherErrorCode.RATE_LIMITED

    def __init__(self, retry_after: int | None = None):
        super().__init__("Rate limit exceeded", "Please try again later")
        self.retry_after = retry_after
        if retry_after:
            self.headers["Retry-After"] = str(retry_after)


class UnexpectedProviderError(WeatherAPIError):
    """Exception raised for untyped failures while serving a request"""

    status_code = 500
    error_code = WeatherErrorCode.PROVIDER_ERROR

    def __init__(self, details: str | None = None):
        super().__init__("An unexpected error occurred", details or "Unknown error")


class ServiceUnavailableError(WeatherAPIError):
    """Exception raised when the weather service has not been started"""

    status_code = 503
    error_code = WeatherErrorCode.PROVIDER_ERROR

    def __init__(self, details: str | None = None):
        super().__init__("Weather service not available", details)


class ConfigurationError(WeatherAPIError):
    """Exception raised when configuration is invalid"""

    pass
