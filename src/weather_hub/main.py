"""Application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from weather_hub import __version__
from weather_hub.api.routes import api_router, health_router
from weather_hub.config import Settings, get_settings
from weather_hub.middleware.logging import LoggingMiddleware, configure_logging
from weather_hub.services.cache import CacheService
from weather_hub.services.models import MapLayer
from weather_hub.services.openweather import OpenWeatherClient
from weather_hub.services.orchestrator import FetchOrchestrator
from weather_hub.services.state import StateStore
from weather_hub.services.weather import WeatherService


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Release the orchestrator and HTTP client on shutdown."""
    yield
    await app.state.orchestrator.aclose()
    await app.state.http_client.aclose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = settings or get_settings()

    # Configure logging
    configure_logging(settings)

    # Create FastAPI app
    app = FastAPI(
        title="Weather Hub API",
        description="Concurrent OpenWeatherMap fetches with per-source loading state",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Build components; the app owns their lifetime
    http_client = httpx.AsyncClient(timeout=settings.upstream_timeout_seconds)
    cache = CacheService(settings)
    client = OpenWeatherClient(settings, http_client)
    orchestrator = FetchOrchestrator(
        WeatherService(cache, client),
        StateStore(),
        simulated_latency=settings.simulated_latency_seconds,
        map_zoom=settings.map_zoom,
        map_layer=MapLayer(settings.default_map_layer),
    )

    app.state.settings = settings
    app.state.http_client = http_client
    app.state.cache = cache
    app.state.orchestrator = orchestrator

    # Add middleware
    app.add_middleware(LoggingMiddleware)

    # Include routers
    app.include_router(api_router)
    app.include_router(health_router)

    # Mount Prometheus metrics endpoint
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

    return app


def run() -> None:
    """Run the application with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "weather_hub.main:create_app",
        factory=True,
        host=settings.app_host,
        port=settings.app_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
