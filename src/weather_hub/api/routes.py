"""API route definitions."""

from typing import Annotated

import structlog
from fastapi import APIRouter, HTTPException, Query, Response, status

from weather_hub.api.dependencies import CacheDep, OrchestratorDep, StateStoreDep
from weather_hub.api.schemas import (
    CycleResponse,
    DailyForecastItem,
    DailyForecastResponse,
    ErrorDetail,
    ErrorResponse,
    GeocodingResponse,
    HealthResponse,
    Location,
    LocationFailure,
    MapLayerRequest,
    MapResponse,
    ReadinessResponse,
    SlotState,
    StateResponse,
)
from weather_hub.services.daily import derive_daily_forecasts
from weather_hub.services.errors import (
    ApiError,
    InvalidURLError,
    LocationUnavailableError,
    NetworkTimeoutError,
    WeatherError,
)
from weather_hub.services.models import GeocodingResult
from weather_hub.services.orchestrator import FetchCycle, FetchOrchestrator
from weather_hub.services.state import Source, StateStore

logger = structlog.get_logger()

# API router for weather endpoints
api_router = APIRouter(prefix="/api/v1", tags=["weather"])

# Health router for health checks
health_router = APIRouter(prefix="/health", tags=["health"])


def _error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail=ErrorResponse(error=ErrorDetail(code=code, message=message)).model_dump(),
    )


async def _cycle_response(cycle: FetchCycle, wait: bool) -> CycleResponse:
    if wait:
        await cycle.wait()
    return CycleResponse(
        cycleId=cycle.cycle_id,
        location=Location(lat=cycle.lat, lon=cycle.lon),
        done=cycle.done,
    )


def _state_response(store: StateStore, orchestrator: FetchOrchestrator) -> StateResponse:
    snapshot = store.snapshot()
    coordinate = orchestrator.coordinate
    return StateResponse(
        cycleId=store.cycle_id,
        location=Location(lat=coordinate[0], lon=coordinate[1]) if coordinate else None,
        locationName=orchestrator.location_name,
        currentWeather=SlotState.from_state(snapshot[Source.CURRENT_WEATHER]),
        forecast=SlotState.from_state(snapshot[Source.FORECAST]),
        airQuality=SlotState.from_state(snapshot[Source.AIR_QUALITY]),
        alerts=SlotState.from_state(snapshot[Source.ALERTS]),
    )


@api_router.post("/location", response_model=CycleResponse, status_code=status.HTTP_202_ACCEPTED)
async def update_location(
    orchestrator: OrchestratorDep,
    location: Location,
    wait: Annotated[bool, Query(description="Wait for every source to finish")] = False,
) -> CycleResponse:
    """Receive a new coordinate and start a fetch cycle for it.

    Any cycle still running for a previous coordinate is cancelled.
    """
    cycle = orchestrator.start_cycle(location.lat, location.lon)
    return await _cycle_response(cycle, wait)


@api_router.post(
    "/location/select", response_model=CycleResponse, status_code=status.HTTP_202_ACCEPTED
)
async def select_location(
    orchestrator: OrchestratorDep,
    place: GeocodingResult,
    wait: Annotated[bool, Query(description="Wait for every source to finish")] = False,
) -> CycleResponse:
    """Start a fetch cycle for a place returned by /geocode."""
    cycle = orchestrator.select_location(place)
    return await _cycle_response(cycle, wait)


@api_router.post("/location/failure", response_model=StateResponse)
async def location_failure(
    orchestrator: OrchestratorDep,
    store: StateStoreDep,
    failure: LocationFailure,
) -> StateResponse:
    """Report that no location could be obtained; every source fails."""
    orchestrator.location_failed(failure.reason)
    return _state_response(store, orchestrator)


@api_router.post(
    "/refresh",
    response_model=CycleResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={409: {"model": ErrorResponse, "description": "No location yet"}},
)
async def refresh(
    orchestrator: OrchestratorDep,
    wait: Annotated[bool, Query(description="Wait for every source to finish")] = False,
) -> CycleResponse:
    """Re-run all four fetches for the last coordinate."""
    try:
        cycle = orchestrator.refresh()
    except LocationUnavailableError as e:
        raise _error(status.HTTP_409_CONFLICT, e.kind.value, str(e)) from e
    return await _cycle_response(cycle, wait)


@api_router.delete("/cycle", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_cycle(orchestrator: OrchestratorDep) -> Response:
    """Cancel the running fetch cycle, if any."""
    orchestrator.cancel_cycle()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@api_router.get("/state", response_model=StateResponse)
async def get_state(orchestrator: OrchestratorDep, store: StateStoreDep) -> StateResponse:
    """Get the loading state of every source."""
    return _state_response(store, orchestrator)


@api_router.get("/forecast/daily", response_model=DailyForecastResponse)
async def get_daily_forecast(store: StateStoreDep) -> DailyForecastResponse:
    """Get one summary per calendar day from the loaded forecast.

    Empty until the forecast source has succeeded.
    """
    days = derive_daily_forecasts(store.get(Source.FORECAST))
    return DailyForecastResponse(days=[DailyForecastItem.from_daily(day) for day in days])


@api_router.get(
    "/geocode",
    response_model=GeocodingResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid query"},
        502: {"model": ErrorResponse, "description": "Upstream API error"},
        504: {"model": ErrorResponse, "description": "Upstream timeout"},
    },
)
async def geocode(
    orchestrator: OrchestratorDep,
    q: Annotated[str, Query(min_length=1, description="Place name")],
    limit: Annotated[int, Query(ge=1, le=5, description="Maximum results")] = 5,
) -> GeocodingResponse:
    """Search places by name."""
    try:
        results = await orchestrator.search_locations(q, limit)

    except InvalidURLError as e:
        raise _error(status.HTTP_400_BAD_REQUEST, e.kind.value, str(e)) from e

    except NetworkTimeoutError as e:
        logger.error("Upstream timeout", query=q, error=str(e))
        raise _error(status.HTTP_504_GATEWAY_TIMEOUT, "upstream_timeout", str(e)) from e

    except ApiError as e:
        logger.error("Upstream API error", query=q, status_code=e.status_code, error=str(e))
        raise _error(status.HTTP_502_BAD_GATEWAY, e.kind.value, str(e)) from e

    except WeatherError as e:
        logger.error("Upstream request failed", query=q, error=str(e))
        raise _error(status.HTTP_502_BAD_GATEWAY, e.kind.value, str(e)) from e

    return GeocodingResponse(results=results)


@api_router.get("/map", response_model=MapResponse)
async def get_map(orchestrator: OrchestratorDep) -> MapResponse:
    """Get the weather map tile for the current location."""
    layer = orchestrator.map_layer
    return MapResponse(layer=layer, displayName=layer.display_name, url=orchestrator.map_url)


@api_router.put("/map/layer", response_model=MapResponse)
async def change_map_layer(orchestrator: OrchestratorDep, request: MapLayerRequest) -> MapResponse:
    """Select the weather map layer."""
    url = orchestrator.change_map_layer(request.layer)
    return MapResponse(layer=request.layer, displayName=request.layer.display_name, url=url)


@health_router.get("/live", response_model=HealthResponse)
async def liveness() -> HealthResponse:
    """Liveness probe - checks if the service is running."""
    return HealthResponse(status="ok")


@health_router.get("/ready", response_model=ReadinessResponse)
async def readiness(cache: CacheDep) -> ReadinessResponse:
    """Readiness probe - checks if the service is ready to accept traffic."""
    cache_status = "ok" if cache.is_healthy() else "unhealthy"

    response = ReadinessResponse(status=cache_status, checks={"cache": cache_status})

    if cache_status != "ok":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=response.model_dump(),
        )

    return response
