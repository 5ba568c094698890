"""Weather service combining the cache and the upstream client."""

from typing import Any

import structlog

from weather_hub.services.cache import CacheService
from weather_hub.services.endpoints import (
    AlertsEndpoint,
    CurrentWeatherEndpoint,
    Endpoint,
    GeocodingEndpoint,
)
from weather_hub.services.models import AlertsResponse, City, CurrentWeather, GeocodingResult
from weather_hub.services.openweather import OpenWeatherClient

logger = structlog.get_logger()


class WeatherService:
    """Service for resolving endpoints with caching."""

    def __init__(self, cache: CacheService, client: OpenWeatherClient) -> None:
        """Initialize service with cache and client."""
        self._cache = cache
        self._client = client

    @property
    def client(self) -> OpenWeatherClient:
        return self._client

    def cached(self, endpoint: Endpoint) -> Any | None:
        """Return the cached value for an endpoint, if any."""
        return self._cache.get(endpoint)

    def store(self, endpoint: Endpoint, value: Any) -> None:
        """Cache a freshly resolved value."""
        self._cache.set(endpoint, value)

    async def resolve(self, endpoint: Endpoint) -> Any:
        """Resolve an endpoint from upstream without consulting its cache entry.

        Alerts are synthesized from current weather, which goes through the
        cache as usual.
        """
        if isinstance(endpoint, AlertsEndpoint):
            return await self._synthesize_alerts(endpoint)
        return await self._client.fetch(endpoint)

    async def get(self, endpoint: Endpoint) -> Any:
        """Get a value for an endpoint.

        Checks cache first, resolves from upstream on cache miss.
        """
        # Check cache first
        cached = self.cached(endpoint)
        if cached is not None:
            logger.info("Cache hit", kind=endpoint.kind.value, cache_hit=True)
            return cached

        logger.info("Cache miss, fetching from upstream", kind=endpoint.kind.value, cache_hit=False)
        value = await self.resolve(endpoint)
        self.store(endpoint, value)
        return value

    async def search_locations(self, query: str, limit: int = 5) -> list[GeocodingResult]:
        """Look up places by name."""
        results: list[GeocodingResult] = await self.get(GeocodingEndpoint(query=query, limit=limit))
        return results

    async def _synthesize_alerts(self, endpoint: AlertsEndpoint) -> AlertsResponse:
        """Build an alerts response with no alerts from current weather.

        The alerts subscription is not available, so the location is taken
        from current weather and the alert list is always empty. Errors from
        the current weather request propagate unchanged.
        """
        current = CurrentWeatherEndpoint(lat=endpoint.lat, lon=endpoint.lon)
        weather: CurrentWeather = await self.get(current)
        city = City(
            id=weather.id,
            name=weather.name,
            coord=weather.coord,
            country=weather.sys.country,
            population=0,
            timezone=weather.timezone,
            sunrise=weather.sys.sunrise,
            sunset=weather.sys.sunset,
        )
        return AlertsResponse(alerts=None, city=city)
