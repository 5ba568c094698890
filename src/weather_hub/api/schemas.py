"""API request and response schemas."""

import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, Field

from weather_hub.services.daily import DailyForecast
from weather_hub.services.models import GeocodingResult, MapLayer
from weather_hub.services.state import Failure, Loading, LoadingState, Success


class Location(BaseModel):
    """Geographic location."""

    lat: float = Field(..., ge=-90, le=90, description="Latitude")
    lon: float = Field(..., ge=-180, le=180, description="Longitude")


class LocationFailure(BaseModel):
    """Report from the location provider that no position is available."""

    reason: str = Field(default="Location services unavailable", description="Failure reason")


class ErrorDetail(BaseModel):
    """Error detail."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Error response."""

    error: ErrorDetail


class CycleResponse(BaseModel):
    """A fetch cycle that was started."""

    cycleId: int = Field(..., description="Cycle identifier")  # noqa: N815
    location: Location
    done: bool = Field(..., description="Whether every source has finished")


class SlotState(BaseModel):
    """Loading state of one source."""

    status: Literal["idle", "loading", "success", "failure"]
    progress: float | None = Field(default=None, description="Progress while loading")
    data: Any | None = Field(default=None, description="Payload on success")
    error: ErrorDetail | None = None

    @classmethod
    def from_state(cls, state: LoadingState) -> "SlotState":
        if isinstance(state, Loading):
            return cls(status="loading", progress=state.progress)
        if isinstance(state, Success):
            value = state.value
            if isinstance(value, BaseModel):
                value = value.model_dump(mode="json", by_alias=True)
            return cls(status="success", progress=1.0, data=value)
        if isinstance(state, Failure):
            return cls(
                status="failure",
                error=ErrorDetail(code=state.error.kind.value, message=str(state.error)),
            )
        return cls(status="idle")


class StateResponse(BaseModel):
    """Snapshot of every source slot."""

    cycleId: int = Field(..., description="Current cycle identifier")  # noqa: N815
    location: Location | None = None
    locationName: str | None = Field(default=None, description="Place name")  # noqa: N815
    currentWeather: SlotState  # noqa: N815
    forecast: SlotState
    airQuality: SlotState  # noqa: N815
    alerts: SlotState


class DailyForecastItem(BaseModel):
    """Forecast summary for one day."""

    date: dt.date
    maxTemp: float  # noqa: N815
    minTemp: float  # noqa: N815
    precipitationChance: float  # noqa: N815
    icon: str | None = None
    iconUrl: str | None = None  # noqa: N815
    description: str = ""

    @classmethod
    def from_daily(cls, daily: DailyForecast) -> "DailyForecastItem":
        return cls(
            date=daily.day,
            maxTemp=daily.max_temp,
            minTemp=daily.min_temp,
            precipitationChance=daily.precipitation_chance,
            icon=daily.icon,
            iconUrl=daily.icon_url,
            description=daily.description,
        )


class DailyForecastResponse(BaseModel):
    """Daily forecast derived from the forecast slot."""

    days: list[DailyForecastItem] = Field(default_factory=list)


class GeocodingResponse(BaseModel):
    """Places matching a search query."""

    results: list[GeocodingResult] = Field(default_factory=list)


class MapLayerRequest(BaseModel):
    """Map layer selection."""

    layer: MapLayer


class MapResponse(BaseModel):
    """Weather map tile for the current location."""

    layer: MapLayer
    displayName: str  # noqa: N815
    url: str | None = Field(default=None, description="Tile URL, once a location is known")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Health status")


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    status: str = Field(..., description="Readiness status")
    checks: dict[str, str] = Field(default_factory=dict, description="Component checks")
