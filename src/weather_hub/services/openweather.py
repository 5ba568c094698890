"""OpenWeatherMap API client."""

from functools import lru_cache
from typing import Any

import httpx
import structlog
from prometheus_client import Counter, Histogram
from pydantic import TypeAdapter, ValidationError

from weather_hub.config import Settings
from weather_hub.services.endpoints import (
    AirQualityEndpoint,
    AlertsEndpoint,
    Api,
    CurrentWeatherEndpoint,
    Endpoint,
    ForecastEndpoint,
    GeocodingEndpoint,
    MapTileEndpoint,
)
from weather_hub.services.errors import (
    ApiError,
    InvalidDataError,
    InvalidResponseError,
    InvalidURLError,
    NetworkError,
    NetworkTimeoutError,
)
from weather_hub.services.models import (
    AirQualityResponse,
    CurrentWeather,
    ForecastResponse,
    GeocodingResult,
    MapLayer,
)

logger = structlog.get_logger()

# Metrics
upstream_requests = Counter(
    "upstream_requests_total",
    "Total upstream API requests",
    ["endpoint", "status"],
)
upstream_duration = Histogram(
    "upstream_request_duration_seconds",
    "Upstream request duration in seconds",
    ["endpoint"],
    buckets=[0.05, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0],
)


@lru_cache
def response_adapter(response_type: Any) -> TypeAdapter[Any]:
    """Return the validator for a response type, built once per type."""
    return TypeAdapter(response_type)


def _error_message(response: httpx.Response) -> str:
    """Extract a message from an error body, falling back to the status code."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return f"Status code: {response.status_code}"


class OpenWeatherClient:
    """HTTP client for the OpenWeatherMap data, geocoding and tile APIs."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        """Initialize client with settings and a shared HTTP client."""
        self._http = http_client
        self._api_key = settings.api_key
        self._units = settings.units
        self._lang = settings.lang
        self._base_urls = {
            Api.DATA: settings.data_base_url,
            Api.GEO: settings.geo_base_url,
            Api.TILE: settings.tile_base_url,
        }

    def build_url(self, endpoint: Endpoint) -> httpx.URL:
        """Resolve an endpoint into a request URL.

        The result depends only on the endpoint and the client settings.

        Raises:
            InvalidURLError: If the endpoint cannot be resolved
        """
        if isinstance(endpoint, AlertsEndpoint):
            raise InvalidURLError("Alerts have no upstream URL; resolve them via current weather")

        params: dict[str, str | int | float] = dict(endpoint.query_params())
        if endpoint.uses_units:
            params["units"] = self._units
            if self._lang:
                params["lang"] = self._lang
        params["appid"] = self._api_key

        try:
            url = httpx.URL(self._base_urls[endpoint.api].rstrip("/") + endpoint.path)
        except httpx.InvalidURL as e:
            raise InvalidURLError(f"Cannot build URL for {endpoint.kind}: {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidURLError(f"Cannot build URL for {endpoint.kind}: {url}")
        return url.copy_merge_params(params)

    def map_tile_url(self, layer: MapLayer, zoom: int, x: int, y: int) -> str:
        """Return the URL of a map tile image."""
        return str(self.build_url(MapTileEndpoint(layer=layer, zoom=zoom, x=x, y=y)))

    async def fetch(self, endpoint: Endpoint) -> Any:
        """Issue one request for the endpoint and decode the body.

        Returns:
            The decoded response, typed by ``endpoint.response_type``

        Raises:
            InvalidURLError: If the endpoint cannot be resolved
            InvalidResponseError: If the response is not well-formed HTTP
            ApiError: If upstream returns a non-2xx status
            InvalidDataError: If the body cannot be decoded
            NetworkError: On transport failures, ``NetworkTimeoutError`` on timeouts
        """
        url = self.build_url(endpoint)
        kind = endpoint.kind.value

        with upstream_duration.labels(endpoint=kind).time():
            try:
                response = await self._http.get(url)

            except httpx.TimeoutException as e:
                upstream_requests.labels(endpoint=kind, status="timeout").inc()
                raise NetworkTimeoutError(f"Request to {kind} timed out", e) from e

            except (httpx.RemoteProtocolError, httpx.DecodingError) as e:
                upstream_requests.labels(endpoint=kind, status="invalid_response").inc()
                raise InvalidResponseError(f"Malformed response from {kind}: {e}") from e

            except httpx.TransportError as e:
                upstream_requests.labels(endpoint=kind, status="error").inc()
                raise NetworkError(f"Request to {kind} failed: {e}", e) from e

        if not response.is_success:
            upstream_requests.labels(endpoint=kind, status="error").inc()
            message = _error_message(response)
            logger.warning(
                "Upstream API error",
                endpoint=kind,
                status_code=response.status_code,
                error=message,
            )
            raise ApiError(message, response.status_code)

        upstream_requests.labels(endpoint=kind, status="success").inc()
        return self._decode(endpoint, response)

    def _decode(self, endpoint: Endpoint, response: httpx.Response) -> Any:
        """Decode a successful response.

        Raises:
            InvalidDataError: If the body does not match the expected shape
        """
        if endpoint.response_type is bytes:
            return response.content
        try:
            return response_adapter(endpoint.response_type).validate_json(response.content)
        except ValidationError as e:
            logger.warning("Failed to decode response", endpoint=endpoint.kind.value, error=str(e))
            raise InvalidDataError(f"Unexpected {endpoint.kind} payload: {e}") from e

    async def get_current_weather(self, lat: float, lon: float) -> CurrentWeather:
        """Fetch current weather for coordinates."""
        result: CurrentWeather = await self.fetch(CurrentWeatherEndpoint(lat=lat, lon=lon))
        return result

    async def get_forecast(self, lat: float, lon: float) -> ForecastResponse:
        """Fetch the 5-day / 3-hour forecast for coordinates."""
        result: ForecastResponse = await self.fetch(ForecastEndpoint(lat=lat, lon=lon))
        return result

    async def get_air_quality(self, lat: float, lon: float) -> AirQualityResponse:
        """Fetch air pollution readings for coordinates."""
        result: AirQualityResponse = await self.fetch(AirQualityEndpoint(lat=lat, lon=lon))
        return result

    async def search_locations(self, query: str, limit: int = 5) -> list[GeocodingResult]:
        """Look up places matching a name."""
        endpoint = GeocodingEndpoint(query=query, limit=limit)
        result: list[GeocodingResult] = await self.fetch(endpoint)
        return result

    async def get_map_tile(self, layer: MapLayer, zoom: int, x: int, y: int) -> bytes:
        """Download a map tile PNG."""
        result: bytes = await self.fetch(MapTileEndpoint(layer=layer, zoom=zoom, x=x, y=y))
        return result
