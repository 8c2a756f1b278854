import logging
import sys
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from weatherdash.api.routes import ERROR_CACHE_CONTROL, error_response, router
from weatherdash.config.settings import Settings, settings
from weatherdash.config.utils import get_config_summary, validate_configuration
from weatherdash.models.weather import WeatherError, WeatherErrorCode
from weatherdash.services.weather_service import WeatherService
from weatherdash.utils.exceptions import ConfigurationError, WeatherAPIError


def setup_logging(settings_obj: Settings) -> None:
    """Configure structured logging for the application."""

    log_level = getattr(logging, settings_obj.log_level.upper())

    if settings_obj.log_format == "json" and not settings_obj.is_development:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Manage application lifespan - startup and shutdown events.

    The weather service, and with it the shared cache and rate limiter, lives
    exactly as long as the application.
    """
    logger = structlog.get_logger(__name__)
    app_settings: Settings = app.state.settings

    logger.info("Starting Weather Dashboard API", **get_config_summary(app_settings))

    validation = validate_configuration(app_settings)
    for warning in validation["warnings"]:
        logger.warning("Configuration warning", warning=warning)
    if not validation["valid"]:
        logger.error("Invalid configuration", errors=validation["errors"])
        raise ConfigurationError("; ".join(validation["errors"]))

    weather_service = WeatherService(app_settings)
    await weather_service.initialize()
    app.state.weather_service = weather_service
    logger.info("Weather service initialized", provider=weather_service.provider.name)

    yield  # Application is running

    logger.info("Shutting down Weather Dashboard API")

    try:
        await app.state.weather_service.cleanup()
        logger.info("Weather service cleanup completed")
    except Exception as e:
        logger.error("Error during service cleanup", error=str(e))


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Settings to use instead of the environment-derived ones

    Returns:
        Configured FastAPI application instance
    """
    app_settings = app_settings or settings

    setup_logging(app_settings)

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        description="Weather API backing the dashboard, with rate limiting and caching",
        docs_url="/docs" if app_settings.is_development else None,
        redoc_url="/redoc" if app_settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    app.add_middleware(TrustedHostMiddleware, allowed_hosts=app_settings.allowed_hosts)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Cache", "X-Provider", "X-RateLimit-Remaining"],
    )

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next) -> Response:
        """Log requests and add processing time headers."""
        logger = structlog.get_logger(__name__)

        start_time = time.time()
        request_id = f"req_{int(start_time * 1000000)}"

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        logger.info("Request started")

        try:
            response = await call_next(request)

            process_time = time.time() - start_time
            response.headers["X-Process-Time"] = str(process_time)
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "Request completed",
                status_code=response.status_code,
                process_time=process_time,
            )

            return response

        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                "Request failed",
                error=str(e),
                error_type=type(e).__name__,
                process_time=process_time,
            )
            raise

    @app.exception_handler(WeatherAPIError)
    async def weather_api_error_handler(
        _request: Request, exc: WeatherAPIError
    ) -> JSONResponse:
        """Handle weather API errors raised outside the weather route."""
        logger = structlog.get_logger(__name__)
        logger.error(
            "Weather API error", error=str(exc), error_type=type(exc).__name__
        )
        return error_response(exc)

    @app.exception_handler(Exception)
    async def general_exception_handler(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected errors gracefully."""
        logger = structlog.get_logger(__name__)
        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=exc,
        )

        error = WeatherError(
            error="An unexpected error occurred",
            code=WeatherErrorCode.PROVIDER_ERROR,
            details=str(exc) if app_settings.is_development else None,
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": error.model_dump(mode="json", exclude_none=True),
            },
            headers={"Cache-Control": ERROR_CACHE_CONTROL},
        )

    app.include_router(router, prefix="/api")

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint providing basic service information."""
        return {
            "service": app_settings.app_name,
            "version": app_settings.app_version,
            "status": "running",
            "mode": app_settings.weather_api_mode,
            "docs": "/docs" if app_settings.is_development else "disabled",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "weatherdash.main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
