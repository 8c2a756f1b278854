from typing import Literal

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Weather Dashboard API"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "production"] = "development"

    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1

    weather_api_mode: Literal["live", "demo"] = Field(
        default="live",
        description="Provider mode: live for Open-Meteo, demo for offline synthetic data",
    )
    weather_api_url: HttpUrl = Field(
        default="https://api.open-meteo.com/v1/forecast",
        description="Open-Meteo forecast endpoint",
    )
    weather_api_timeout: float = Field(
        default=10, description="Upstream request timeout in seconds"
    )
    weather_api_user_agent: str = "WeatherApp/1.0"

    cache_ttl_minutes: float = Field(default=5, description="Cache TTL in minutes")
    cache_max_size: int = Field(
        default=1000, description="Maximum number of cached responses"
    )
    cache_evict_batch: int = Field(
        default=100, description="Entries dropped when the cache is full"
    )

    rate_limit_max_requests: int = Field(
        default=30, description="Requests allowed per client per window"
    )
    rate_limit_window_seconds: float = Field(
        default=60, description="Rate limit window length in seconds"
    )

    demo_delay_min_seconds: float = Field(
        default=0.2, description="Lower bound of the simulated demo latency"
    )
    demo_delay_max_seconds: float = Field(
        default=0.5, description="Upper bound of the simulated demo latency"
    )

    validate_provider_payloads: bool = Field(
        default=True,
        description=(
            "Re-check provider payloads before they are cached and served; "
            "catches data mutated after the model was built"
        ),
    )

    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    allowed_hosts: list[str] = Field(default_factory=lambda: ["*"])

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    health_check_timeout: float = Field(
        default=5, description="Health check timeout in seconds"
    )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_demo_mode(self) -> bool:
        return self.weather_api_mode == "demo"

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_minutes * 60


settings = Settings()
