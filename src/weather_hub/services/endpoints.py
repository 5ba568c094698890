"""Endpoint descriptors for the OpenWeatherMap API.

Each descriptor is an immutable value naming one request: its kind, the
parameters that define it, where it lives upstream and what it decodes to.
Descriptors are hashable so they double as the identity of a cached result.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar
from urllib.parse import quote

from weather_hub.services.errors import InvalidURLError
from weather_hub.services.models import (
    AirQualityResponse,
    AlertsResponse,
    CurrentWeather,
    ForecastResponse,
    GeocodingResult,
    MapLayer,
)


class EndpointKind(StrEnum):
    """Kinds of upstream request; also the first segment of a cache key."""

    CURRENT_WEATHER = "current_weather"
    FORECAST = "forecast"
    AIR_QUALITY = "air_quality"
    ALERTS = "alerts"
    GEOCODING = "geocoding"
    MAP_TILE = "map_tile"


class Api(StrEnum):
    """Upstream host families."""

    DATA = "data"
    GEO = "geo"
    TILE = "tile"


def _format_coordinate(value: float, precision: int) -> str:
    # Adding 0.0 folds -0.0 into 0.0 so both hemispheres of zero share a key
    return repr(round(value, precision) + 0.0)


@dataclass(frozen=True)
class CoordinateEndpoint:
    """Endpoint addressed by a latitude/longitude pair."""

    lat: float
    lon: float

    kind: ClassVar[EndpointKind]
    api: ClassVar[Api] = Api.DATA
    path: ClassVar[str]
    response_type: ClassVar[Any]
    uses_units: ClassVar[bool] = True

    def query_params(self) -> dict[str, str | int | float]:
        """Defining query parameters, excluding units, locale and credentials."""
        if not (math.isfinite(self.lat) and math.isfinite(self.lon)):
            raise InvalidURLError(f"Non-finite coordinate: lat={self.lat}, lon={self.lon}")
        if not (-90 <= self.lat <= 90 and -180 <= self.lon <= 180):
            raise InvalidURLError(f"Coordinate out of range: lat={self.lat}, lon={self.lon}")
        return {"lat": self.lat, "lon": self.lon}

    def cache_key(self, precision: int) -> str:
        lat = _format_coordinate(self.lat, precision)
        lon = _format_coordinate(self.lon, precision)
        return f"{self.kind}:{lat}:{lon}"


@dataclass(frozen=True)
class CurrentWeatherEndpoint(CoordinateEndpoint):
    kind = EndpointKind.CURRENT_WEATHER
    path = "/weather"
    response_type = CurrentWeather


@dataclass(frozen=True)
class ForecastEndpoint(CoordinateEndpoint):
    kind = EndpointKind.FORECAST
    path = "/forecast"
    response_type = ForecastResponse


@dataclass(frozen=True)
class AirQualityEndpoint(CoordinateEndpoint):
    kind = EndpointKind.AIR_QUALITY
    path = "/air_pollution"
    response_type = AirQualityResponse


@dataclass(frozen=True)
class AlertsEndpoint(CoordinateEndpoint):
    """Alerts for a coordinate.

    There is no upstream URL: the alerts subscription is unavailable, so the
    response is synthesized from current weather by ``WeatherService``.
    """

    kind = EndpointKind.ALERTS
    path = ""
    response_type = AlertsResponse


@dataclass(frozen=True)
class GeocodingEndpoint:
    """Direct geocoding: place name to coordinates."""

    query: str
    limit: int = 5

    kind: ClassVar[EndpointKind] = EndpointKind.GEOCODING
    api: ClassVar[Api] = Api.GEO
    path: ClassVar[str] = "/direct"
    response_type: ClassVar[Any] = list[GeocodingResult]
    uses_units: ClassVar[bool] = False

    def query_params(self) -> dict[str, str | int | float]:
        if not self.query.strip():
            raise InvalidURLError("Geocoding query is empty")
        if self.limit < 1:
            raise InvalidURLError(f"Geocoding limit must be positive, got {self.limit}")
        return {"q": self.query, "limit": self.limit}

    def cache_key(self, precision: int) -> str:
        return f"{self.kind}:{quote(self.query, safe='')}:{self.limit}"


@dataclass(frozen=True)
class MapTileEndpoint:
    """A single PNG map tile, addressed entirely by its path."""

    layer: MapLayer
    zoom: int
    x: int
    y: int

    kind: ClassVar[EndpointKind] = EndpointKind.MAP_TILE
    api: ClassVar[Api] = Api.TILE
    response_type: ClassVar[Any] = bytes
    uses_units: ClassVar[bool] = False

    @property
    def path(self) -> str:
        try:
            layer = MapLayer(self.layer)
        except ValueError as e:
            raise InvalidURLError(f"Unknown map layer: {self.layer}") from e
        size = 2**self.zoom if self.zoom >= 0 else 0
        if not (0 <= self.x < size and 0 <= self.y < size):
            raise InvalidURLError(
                f"Tile {self.x}/{self.y} is outside the grid for zoom {self.zoom}"
            )
        return f"/maps/{layer.value}/{self.zoom}/{self.x}/{self.y}.png"

    def query_params(self) -> dict[str, str | int | float]:
        return {}

    def cache_key(self, precision: int) -> str:
        return f"{self.kind}:{self.layer}:{self.zoom}:{self.x}:{self.y}"


Endpoint = (
    CurrentWeatherEndpoint
    | ForecastEndpoint
    | AirQualityEndpoint
    | AlertsEndpoint
    | GeocodingEndpoint
    | MapTileEndpoint
)
