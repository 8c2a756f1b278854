from datetime import datetime, timezone
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from weatherdash.models.weather import WeatherError
from weatherdash.services.weather_service import WeatherService
from weatherdash.utils.exceptions import ServiceUnavailableError, WeatherAPIError

logger = structlog.get_logger(__name__)
router = APIRouter()

SUCCESS_CACHE_CONTROL = "public, max-age=60"
ERROR_CACHE_CONTROL = "no-store"


def get_weather_service(request: Request) -> WeatherService:
    """
    Dependency injection for weather service.

    Retrieves the weather service instance from the application state.
    This service is initialized during application startup.
    """
    if not hasattr(request.app.state, "weather_service"):
        raise ServiceUnavailableError("Service not initialized")

    return request.app.state.weather_service


def get_client_identifier(request: Request) -> str:
    """
    Identify the client for rate limiting.

    Uses the first X-Forwarded-For hop, then X-Real-IP. Requests carrying
    neither share the "unknown" bucket.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip

    return "unknown"


def error_response(exc: WeatherAPIError) -> JSONResponse:
    """Build the structured error envelope for a weather API error"""
    error = WeatherError(error=exc.message, code=exc.error_code, details=exc.details)
    headers = {"Cache-Control": ERROR_CACHE_CONTROL, **exc.headers}
    if exc.rate_limit_remaining is not None:
        headers["X-RateLimit-Remaining"] = str(exc.rate_limit_remaining)

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": error.model_dump(mode="json", exclude_none=True),
        },
        headers=headers,
    )


@router.get(
    "/weather",
    summary="Get current, hourly and daily weather",
    description="""
    Retrieve weather for a pair of coordinates.

    The endpoint applies, in order:
    - Per-client rate limiting (30 requests per minute by default)
    - Parameter validation
    - A 5 minute in-memory cache keyed by coordinates rounded to 2 decimals
    - A provider fetch (Open-Meteo, or synthetic data in demo mode)

    **Query Parameters:**
    - `lat`: Latitude between -90 and 90 (required)
    - `lon`: Longitude between -180 and 180 (required)
    - `unit`: `celsius` (default) or `fahrenheit`
    """,
    responses={
        200: {"description": "Weather data retrieved successfully"},
        400: {"description": "Invalid request parameters"},
        429: {"description": "Client or upstream rate limit exceeded"},
        500: {"description": "Unexpected error"},
        502: {"description": "Upstream weather provider error"},
        504: {"description": "Upstream weather provider timeout"},
    },
    tags=["Weather"],
)
async def get_weather(
    request: Request,
    lat: Annotated[
        str | None, Query(description="Latitude in degrees", examples=["51.51"])
    ] = None,
    lon: Annotated[
        str | None, Query(description="Longitude in degrees", examples=["-0.13"])
    ] = None,
    unit: Annotated[
        str | None, Query(description="celsius or fahrenheit", examples=["celsius"])
    ] = None,
    weather_service: WeatherService = Depends(get_weather_service),
) -> JSONResponse:
    """
    Get weather data for the requested coordinates.

    Every failure is returned as a structured error envelope with a stable
    code; success responses may be cached by intermediaries for 60 seconds.
    """
    client_id = get_client_identifier(request)
    log = logger.bind(client_id=client_id, lat=lat, lon=lon, unit=unit)

    try:
        weather_data, metadata = await weather_service.get_weather(
            {"lat": lat, "lon": lon, "unit": unit}, client_id
        )
    except WeatherAPIError as e:
        log_method = log.error if e.status_code >= 500 else log.warning
        log_method(
            "Weather request failed",
            status_code=e.status_code,
            code=e.error_code.value,
            error=e.message,
            details=e.details,
        )
        return error_response(e)

    headers = {
        "X-Cache": "HIT" if metadata["cache_hit"] else "MISS",
        "X-RateLimit-Remaining": str(metadata["rate_limit_remaining"]),
        "Cache-Control": SUCCESS_CACHE_CONTROL,
    }
    if metadata["cache_hit"]:
        headers["X-Cache-Age"] = str(metadata["cache_age_seconds"])
    else:
        headers["X-Provider"] = metadata["provider"]

    log.info("Weather request completed successfully", cache_hit=metadata["cache_hit"])

    return JSONResponse(
        content={"success": True, "data": weather_data.to_wire()}, headers=headers
    )


@router.get(
    "/health",
    summary="Service health check",
    description="""
    Health check endpoint that verifies upstream weather API connectivity.

    Returns the overall status, service version, uptime in seconds and one
    entry per check with its duration.
    """,
    tags=["Health"],
)
async def health_check(
    weather_service: WeatherService = Depends(get_weather_service),
) -> JSONResponse:
    """Perform a health check of the weather provider."""
    logger.info("Health check requested")

    try:
        health_status = await weather_service.health_check()
        status_code = 503 if health_status["status"] == "unhealthy" else 200

        logger.info(
            "Health check completed",
            status=health_status["status"],
            status_code=status_code,
        )

    except Exception as e:
        logger.error("Health check failed", error=str(e), error_type=type(e).__name__)
        health_status = {
            "status": "unhealthy",
            "error": str(e),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        status_code = 503

    return JSONResponse(
        status_code=status_code,
        content=health_status,
        headers={"Cache-Control": ERROR_CACHE_CONTROL},
    )


@router.get(
    "/health/ready",
    summary="Readiness probe",
    description="""
    Simple readiness probe for container orchestration systems.

    Reports whether the weather service finished starting up, without
    contacting the upstream provider.
    """,
    tags=["Health"],
)
async def readiness_check(
    weather_service: WeatherService = Depends(get_weather_service),
) -> Any:
    """Simple readiness check for container orchestration."""
    if not weather_service._initialized:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "message": "Service not initialized"},
        )

    return {"status": "ready"}


@router.get(
    "/cache/stats",
    summary="Cache statistics",
    description="""
    Retrieve response cache and rate limiter statistics:
    - Cache size, maximum size and TTL
    - Number of tracked rate limit clients, quota and window
    - Active provider
    """,
    tags=["Cache Management"],
)
async def get_cache_stats(
    weather_service: WeatherService = Depends(get_weather_service),
) -> dict[str, Any]:
    """Get cache configuration and statistics."""
    logger.info("Cache stats requested")
    return weather_service.get_cache_stats()


@router.post(
    "/cache/clear",
    summary="Clear the response cache",
    description="""
    Drop every cached weather response, for example after the dashboard's
    display unit changed.
    """,
    tags=["Cache Management"],
)
async def clear_cache(
    weather_service: WeatherService = Depends(get_weather_service),
) -> dict[str, Any]:
    """Drop all cached responses."""
    result = weather_service.clear_cache()
    logger.info("Cache cleared", cleared_entries=result["cleared_entries"])
    return result


@router.post(
    "/cache/invalidate",
    summary="Invalidate expired cache entries",
    description="""
    Manually trigger cleanup of expired cache entries instead of waiting for
    them to be dropped when next read.

    Returns the number of entries that were removed.
    """,
    tags=["Cache Management"],
)
async def invalidate_expired_cache(
    weather_service: WeatherService = Depends(get_weather_service),
) -> dict[str, Any]:
    """Manually trigger expired cache cleanup."""
    result = weather_service.invalidate_expired_cache()
    logger.info(
        "Cache invalidation completed",
        deleted_entries=result["deleted_entries"],
    )
    return result
