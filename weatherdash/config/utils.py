from .settings import Settings


def validate_configuration(settings: Settings) -> dict[str, list[str] | bool]:
    """Validate configuration and return validation results."""
    errors = []
    warnings = []

    if settings.cache_ttl_minutes <= 0:
        errors.append("CACHE_TTL_MINUTES must be positive")

    if settings.cache_max_size <= 0:
        errors.append("CACHE_MAX_SIZE must be a positive integer")

    if not (0 < settings.cache_evict_batch <= settings.cache_max_size):
        errors.append("CACHE_EVICT_BATCH must be between 1 and CACHE_MAX_SIZE")

    if settings.rate_limit_max_requests <= 0:
        errors.append("RATE_LIMIT_MAX_REQUESTS must be a positive integer")

    if settings.rate_limit_window_seconds <= 0:
        errors.append("RATE_LIMIT_WINDOW_SECONDS must be positive")

    if settings.weather_api_timeout <= 0:
        errors.append("WEATHER_API_TIMEOUT must be positive")

    if settings.health_check_timeout <= 0:
        errors.append("HEALTH_CHECK_TIMEOUT must be positive")

    if settings.demo_delay_min_seconds < 0:
        errors.append("DEMO_DELAY_MIN_SECONDS cannot be negative")

    if settings.demo_delay_max_seconds < settings.demo_delay_min_seconds:
        errors.append("DEMO_DELAY_MAX_SECONDS must not be below DEMO_DELAY_MIN_SECONDS")

    if not (1 <= settings.port <= 65535):
        errors.append("PORT must be between 1 and 65535")

    if settings.is_production and settings.is_demo_mode:
        warnings.append("WEATHER_API_MODE=demo serves synthetic data in production")

    if settings.is_production and "*" in settings.cors_origins:
        warnings.append("CORS allows any origin in production")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
    }


def get_config_summary(settings: Settings) -> dict[str, str | int | float | bool]:
    """Get a summary of current configuration for logging/debugging."""
    return {
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "weather_api_mode": settings.weather_api_mode,
        "weather_api_timeout": settings.weather_api_timeout,
        "cache_ttl_minutes": settings.cache_ttl_minutes,
        "cache_max_size": settings.cache_max_size,
        "rate_limit": f"{settings.rate_limit_max_requests}/"
        f"{settings.rate_limit_window_seconds:g}s",
        "debug": settings.debug,
        "log_level": settings.log_level,
        "api_endpoint": f"{settings.host}:{settings.port}",
    }
