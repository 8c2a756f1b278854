"""
Main weather service orchestrating all components for the weather API.

This service coordinates the rate limiter, request validation, the response
cache and the configured weather provider to handle one weather request.
"""

import logging
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from weatherdash.config.settings import Settings
from weatherdash.models.weather import WeatherData, WeatherRequest
from weatherdash.providers.weather import WeatherProvider, create_weather_provider
from weatherdash.services.cache_service import ResponseCache, make_cache_key
from weatherdash.services.rate_limiter import RateLimiter, RateLimitResult
from weatherdash.services.validation import (
    ensure_valid_weather_data,
    parse_weather_request,
)
from weatherdash.utils.exceptions import (
    ProviderError,
    RateLimitExceededError,
    UnexpectedProviderError,
    WeatherAPIError,
)

logger = logging.getLogger(__name__)


class WeatherService:
    """
    Main weather service orchestrating all components.

    This service handles the complete flow, stopping at the first failure:
    1. Check the client's rate limit
    2. Validate the request parameters
    3. Serve from cache when a fresh entry exists
    4. Fetch from the provider on a miss and store the result
    """

    def __init__(
        self,
        settings: Settings,
        provider: WeatherProvider | None = None,
        cache: ResponseCache | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        self.settings = settings
        self.provider = provider or create_weather_provider(settings)
        self.cache = cache or ResponseCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_size=settings.cache_max_size,
            evict_batch=settings.cache_evict_batch,
        )
        self.rate_limiter = rate_limiter or RateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
        self._started_at = time.monotonic()
        self._initialized = False

    async def initialize(self) -> None:
        """Start background work owned by the service"""
        if self._initialized:
            return
        self.rate_limiter.start_sweeper()
        self._initialized = True
        logger.info(f"Weather service initialized with provider {self.provider.name}")

    async def cleanup(self) -> None:
        """Cleanup resources"""
        await self.rate_limiter.stop_sweeper()
        await self.provider.aclose()
        self._initialized = False
        logger.info("Weather service cleanup completed")

    async def get_weather(
        self, params: Mapping[str, Any], client_id: str
    ) -> tuple[WeatherData, dict[str, Any]]:
        """
        Get weather data for raw request parameters on behalf of a client.

        Returns:
            Tuple of (weather_data, metadata) where metadata contains:
            - cache_hit: bool
            - cache_age_seconds: int (if cache hit)
            - provider: str (if cache miss)
            - rate_limit_remaining: int

        Raises:
            WeatherAPIError: subclasses carry the status code, error code and
                the client's remaining quota
        """
        rate_limit = self._check_rate_limit(client_id)

        try:
            request = parse_weather_request(params)

            cache_key = make_cache_key(request.lat, request.lon, request.unit)
            entry = self.cache.get_entry(cache_key)
            if entry is not None:
                logger.info(f"Cache hit for {cache_key}")
                return entry.data, {
                    "cache_hit": True,
                    "cache_age_seconds": self.cache.age_seconds(entry),
                    "provider": None,
                    "rate_limit_remaining": rate_limit.remaining,
                }

            weather_data = await self._fetch_from_provider(request)
            self.cache.set(cache_key, weather_data)

            logger.info(f"Cache miss for {cache_key}, served by {self.provider.name}")
            return weather_data, {
                "cache_hit": False,
                "cache_age_seconds": 0,
                "provider": self.provider.name,
                "rate_limit_remaining": rate_limit.remaining,
            }

        except WeatherAPIError as e:
            e.rate_limit_remaining = rate_limit.remaining
            raise

    def _check_rate_limit(self, client_id: str) -> RateLimitResult:
        result = self.rate_limiter.check(client_id)
        if not result.allowed:
            retry_after = self.rate_limiter.retry_after_seconds(result)
            logger.warning(
                f"Rate limit exceeded for client {client_id}, retry in {retry_after}s"
            )
            raise RateLimitExceededError(retry_after)
        return result

    async def _fetch_from_provider(self, request: WeatherRequest) -> WeatherData:
        """Fetch weather data from the configured provider"""
        try:
            weather_data = await self.provider.fetch_weather(
                request.lat,
                request.lon,
                request.unit,
                timeout_seconds=self.settings.weather_api_timeout,
            )
            if self.settings.validate_provider_payloads:
                ensure_valid_weather_data(weather_data)
            return weather_data
        except ProviderError:
            raise
        except Exception as e:
            logger.exception(
                f"Unexpected error fetching weather data for "
                f"({request.lat}, {request.lon}): {e}"
            )
            raise UnexpectedProviderError(str(e) or None) from e

    async def health_check(self) -> dict[str, Any]:
        """Check provider connectivity and report service health"""
        checks = []

        start = time.monotonic()
        try:
            provider_health = await self.provider.health_check()
            check = {
                "name": "weather_api",
                "status": "pass" if provider_health.healthy else "fail",
                "duration_ms": int((time.monotonic() - start) * 1000),
            }
            if provider_health.message:
                check["message"] = provider_health.message
        except Exception as e:
            logger.error(f"Provider health check failed: {e}")
            check = {
                "name": "weather_api",
                "status": "fail",
                "duration_ms": int((time.monotonic() - start) * 1000),
                "message": str(e) or "Unknown error",
            }
        checks.append(check)

        return {
            "status": "healthy"
            if all(c["status"] == "pass" for c in checks)
            else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": self.settings.app_version,
            "uptime": int(time.monotonic() - self._started_at),
            "provider": self.provider.name,
            "checks": checks,
        }

    def get_cache_stats(self) -> dict[str, Any]:
        """Get cache and rate limiter statistics"""
        return {
            "cache": self.cache.stats(),
            "rate_limit": self.rate_limiter.stats(),
            "provider": self.provider.name,
            "service_initialized": self._initialized,
        }

    def clear_cache(self) -> dict[str, Any]:
        return {
            "cleared_entries": self.cache.clear(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def invalidate_expired_cache(self) -> dict[str, Any]:
        """Manually trigger expired cache cleanup"""
        return {
            "deleted_entries": self.cache.purge_expired(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


async def create_weather_service(settings: Settings) -> WeatherService:
    """
    Factory function to create and initialize a weather service.

    Usage:
        service = await create_weather_service(settings)
        try:
            weather_data, metadata = await service.get_weather(params, client_id)
        finally:
            await service.cleanup()
    """
    service = WeatherService(settings)
    await service.initialize()
    return service
