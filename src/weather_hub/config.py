"""Application configuration management."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Server settings
    app_host: str = Field(default="0.0.0.0", description="Server bind host")
    app_port: int = Field(default=8080, description="Server bind port")

    # Upstream API settings
    api_key: str = Field(default="", description="OpenWeatherMap API key (appid)")
    data_base_url: str = Field(
        default="https://api.openweathermap.org/data/2.5",
        description="OpenWeatherMap data API base URL",
    )
    geo_base_url: str = Field(
        default="https://api.openweathermap.org/geo/1.0",
        description="OpenWeatherMap geocoding API base URL",
    )
    tile_base_url: str = Field(
        default="https://tile.openweathermap.org",
        description="OpenWeatherMap map tile base URL",
    )
    units: str = Field(default="metric", description="Units of measurement")
    lang: str | None = Field(default=None, description="Locale for descriptions")
    upstream_timeout_seconds: float = Field(
        default=10.0,
        description="Upstream request timeout in seconds",
        ge=0.1,
        le=60.0,
    )

    # Cache settings
    cache_max_size: int = Field(
        default=1000,
        description="Maximum cache entries",
        ge=1,
        le=1000000,
    )
    cache_coordinate_precision: int = Field(
        default=4,
        description="Decimal places of latitude/longitude kept in cache keys",
        ge=0,
        le=8,
    )
    cache_ttl_current_weather_seconds: int = Field(default=600, ge=1)
    cache_ttl_forecast_seconds: int = Field(default=1800, ge=1)
    cache_ttl_air_quality_seconds: int = Field(default=600, ge=1)
    cache_ttl_alerts_seconds: int = Field(default=600, ge=1)
    cache_ttl_geocoding_seconds: int = Field(default=86400, ge=1)
    cache_ttl_map_tile_seconds: int = Field(default=3600, ge=1)

    # Fetch cycle settings
    simulated_latency_seconds: float = Field(
        default=0.0,
        description="Artificial delay per fetch, for previews and demos",
        ge=0.0,
        le=30.0,
    )
    map_zoom: int = Field(default=2, description="Zoom level of the map tile", ge=0, le=20)
    default_map_layer: str = Field(
        default="precipitation_new",
        description="Map layer selected on startup",
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: str = Field(
        default="json",
        description="Log format (json or text)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
