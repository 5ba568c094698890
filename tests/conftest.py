"""Test fixtures."""

from collections.abc import AsyncIterator, Iterator
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient

from weather_hub.config import Settings
from weather_hub.main import create_app
from weather_hub.services.cache import CacheService
from weather_hub.services.openweather import OpenWeatherClient


class FakeClock:
    """Manually advanced monotonic timer."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        api_key="test-key",
        upstream_timeout_seconds=1.0,
        cache_max_size=1000,
        log_level="DEBUG",
        log_format="text",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_service(settings: Settings, clock: FakeClock) -> CacheService:
    """Create test cache service driven by a fake clock."""
    return CacheService(settings, timer=clock)


@pytest_asyncio.fixture
async def http_client() -> AsyncIterator[httpx.AsyncClient]:
    """Create an HTTP client, closed after the test; requests are intercepted by respx."""
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def openweather_client(settings: Settings, http_client: httpx.AsyncClient) -> OpenWeatherClient:
    """Create test OpenWeatherMap client."""
    return OpenWeatherClient(settings, http_client)


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    """Create test application."""
    return create_app(settings)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Create test client; entering it keeps one event loop for the whole test."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def current_weather_payload() -> dict[str, Any]:
    return {
        "coord": {"lon": -0.12, "lat": 51.5},
        "weather": [
            {"id": 802, "main": "Clouds", "description": "scattered clouds", "icon": "03d"}
        ],
        "base": "stations",
        "main": {
            "temp": 15.2,
            "feels_like": 14.6,
            "temp_min": 13.9,
            "temp_max": 16.4,
            "pressure": 1015,
            "humidity": 72,
        },
        "visibility": 10000,
        "wind": {"speed": 4.1, "deg": 240},
        "clouds": {"all": 40},
        "dt": 1717236000,
        "sys": {"country": "GB", "sunrise": 1717213532, "sunset": 1717272723},
        "timezone": 3600,
        "id": 2643743,
        "name": "London",
        "cod": 200,
    }


@pytest.fixture
def forecast_payload() -> dict[str, Any]:
    def item(dt: int, temp: float, icon: str, pop: float) -> dict[str, Any]:
        return {
            "dt": dt,
            "main": {"temp": temp, "temp_min": temp, "temp_max": temp, "humidity": 60},
            "weather": [{"id": 800, "main": "Clear", "description": "clear sky", "icon": icon}],
            "pop": pop,
        }

    # 2024-06-01 09:00, 13:00, 21:00 and 2024-06-02 12:00 UTC
    return {
        "cod": "200",
        "cnt": 4,
        "list": [
            item(1717232400, 18.0, "01d", 0.1),
            item(1717246800, 24.0, "02d", 0.4),
            item(1717275600, 15.0, "01n", 0.2),
            item(1717329600, 21.0, "10d", 0.8),
        ],
        "city": {"id": 2643743, "name": "London", "country": "GB", "timezone": 0},
    }


@pytest.fixture
def air_quality_payload() -> dict[str, Any]:
    return {
        "coord": {"lon": -0.12, "lat": 51.5},
        "list": [
            {
                "main": {"aqi": 2},
                "components": {
                    "co": 201.94,
                    "no": 0.02,
                    "no2": 0.77,
                    "o3": 68.66,
                    "so2": 0.64,
                    "pm2_5": 0.5,
                    "pm10": 0.54,
                    "nh3": 0.12,
                },
                "dt": 1717236000,
            }
        ],
    }


@pytest.fixture
def geocoding_payload() -> list[dict[str, Any]]:
    return [
        {"name": "London", "lat": 51.5073, "lon": -0.1276, "country": "GB", "state": "England"},
        {"name": "London", "lat": 42.9834, "lon": -81.233, "country": "CA", "state": "Ontario"},
    ]
