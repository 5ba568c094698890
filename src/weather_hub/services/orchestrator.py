"""Concurrent fetch cycles for the four weather sources."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field

import structlog

from weather_hub.services.endpoints import (
    AirQualityEndpoint,
    AlertsEndpoint,
    CoordinateEndpoint,
    CurrentWeatherEndpoint,
    ForecastEndpoint,
)
from weather_hub.services.errors import LocationUnavailableError, UnknownError, WeatherError
from weather_hub.services.models import GeocodingResult, MapLayer
from weather_hub.services.state import Failure, Loading, Source, StateStore, Success
from weather_hub.services.tiles import tile_for
from weather_hub.services.weather import WeatherService

logger = structlog.get_logger()

SOURCE_ENDPOINTS: dict[Source, type[CoordinateEndpoint]] = {
    Source.CURRENT_WEATHER: CurrentWeatherEndpoint,
    Source.FORECAST: ForecastEndpoint,
    Source.AIR_QUALITY: AirQualityEndpoint,
    Source.ALERTS: AlertsEndpoint,
}

# Progress published before and after the cancellation checkpoint
PROGRESS_STARTED = 0.3
PROGRESS_REQUESTING = 0.7

LOCATION_UNAVAILABLE_NAME = "Location Unavailable"
UNKNOWN_LOCATION_NAME = "Unknown Location"


class FetchCancelled(Exception):
    """Raised at a checkpoint once the owning cycle has been cancelled."""


class CancellationToken:
    """Broadcast cancellation flag shared by all subtasks of a cycle."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FetchCancelled


@dataclass
class FetchCycle:
    """The four concurrent fetches for one coordinate."""

    cycle_id: int
    lat: float
    lon: float
    token: CancellationToken = field(default_factory=CancellationToken)
    tasks: dict[Source, asyncio.Task[None]] = field(default_factory=dict)
    runner: asyncio.Task[None] | None = None

    def cancel(self) -> None:
        """Signal cancellation without waiting for the subtasks to stop."""
        self.token.cancel()
        for task in self.tasks.values():
            task.cancel()

    async def wait(self) -> None:
        """Wait until every subtask has finished or been cancelled."""
        if self.runner is not None:
            await asyncio.gather(self.runner, return_exceptions=True)

    @property
    def done(self) -> bool:
        return self.runner is not None and self.runner.done()


class FetchOrchestrator:
    """Runs fetch cycles and publishes their progress to a ``StateStore``.

    At most one cycle is alive at a time: starting a cycle cancels the
    previous one first.
    """

    def __init__(
        self,
        service: WeatherService,
        store: StateStore,
        *,
        simulated_latency: float = 0.0,
        map_zoom: int = 2,
        map_layer: MapLayer = MapLayer.PRECIPITATION,
    ) -> None:
        """Initialize orchestrator.

        Args:
            service: Cache-aware weather service
            store: State store receiving slot updates
            simulated_latency: Extra delay per fetch, for previews and demos
            map_zoom: Zoom level of the map tile URL
            map_layer: Initially selected map layer
        """
        self._service = service
        self._store = store
        self._simulated_latency = simulated_latency
        self._map_zoom = map_zoom
        self._map_layer = map_layer
        self._map_url: str | None = None
        self._cycle: FetchCycle | None = None
        self._coordinate: tuple[float, float] | None = None
        self._location_name: str | None = None

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def current_cycle(self) -> FetchCycle | None:
        return self._cycle

    @property
    def coordinate(self) -> tuple[float, float] | None:
        return self._coordinate

    @property
    def location_name(self) -> str | None:
        """Display name of the current location, once known."""
        return self._location_name

    @property
    def map_layer(self) -> MapLayer:
        return self._map_layer

    @property
    def map_url(self) -> str | None:
        return self._map_url

    def start_cycle(self, lat: float, lon: float, *, name: str | None = None) -> FetchCycle:
        """Cancel any running cycle and fetch all sources for a coordinate.

        Must be called from a running event loop. Without a ``name`` the
        location name is taken from current weather once the cycle finishes.
        """
        self.cancel_cycle()

        cycle_id = self._store.begin_cycle(Loading(0.0))
        cycle = FetchCycle(cycle_id=cycle_id, lat=lat, lon=lon)
        self._cycle = cycle
        self._coordinate = (lat, lon)
        self._location_name = name

        # Subtasks copy the context at creation, so every event they log
        # carries the cycle fields
        with structlog.contextvars.bound_contextvars(cycle_id=cycle_id, lat=lat, lon=lon):
            logger.info("Fetch cycle started")
            for source in Source:
                cycle.tasks[source] = asyncio.create_task(
                    self._fetch(cycle, source),
                    name=f"fetch-{source.value}-{cycle_id}",
                )
            cycle.runner = asyncio.create_task(self._run(cycle), name=f"cycle-{cycle_id}")
        return cycle

    def cancel_cycle(self) -> None:
        """Cancel the running cycle, if any. Does not wait for it."""
        cycle = self._cycle
        if cycle is None or cycle.token.cancelled:
            return
        cycle.cancel()
        logger.info("Fetch cycle cancelled", cycle_id=cycle.cycle_id)

    def location_failed(self, reason: str) -> None:
        """Mark every source as failed because no location is available."""
        self.cancel_cycle()
        error = LocationUnavailableError(reason)
        cycle_id = self._store.begin_cycle(Failure(error))
        self._location_name = LOCATION_UNAVAILABLE_NAME
        logger.warning("Location unavailable", cycle_id=cycle_id, error=reason)

    def refresh(self) -> FetchCycle:
        """Re-run a full cycle for the last coordinate.

        Raises:
            LocationUnavailableError: If no coordinate has been received yet
        """
        if self._coordinate is None:
            raise LocationUnavailableError("No location to refresh")
        lat, lon = self._coordinate
        name = self._location_name
        if name in (LOCATION_UNAVAILABLE_NAME, UNKNOWN_LOCATION_NAME):
            name = None
        return self.start_cycle(lat, lon, name=name)

    def select_location(self, location: GeocodingResult) -> FetchCycle:
        """Fetch all sources for a geocoding search result."""
        return self.start_cycle(location.lat, location.lon, name=location.name)

    async def search_locations(self, query: str, limit: int = 5) -> list[GeocodingResult]:
        """Search places by name; results can be passed to ``select_location``."""
        return await self._service.search_locations(query, limit)

    def change_map_layer(self, layer: MapLayer) -> str | None:
        """Select a map layer and recompute the tile URL for the last coordinate."""
        self._map_layer = MapLayer(layer)
        if self._coordinate is not None:
            self._update_map_url(*self._coordinate)
        return self._map_url

    async def aclose(self) -> None:
        """Cancel the running cycle and wait for it to wind down."""
        cycle = self._cycle
        self.cancel_cycle()
        if cycle is not None:
            await cycle.wait()

    async def _run(self, cycle: FetchCycle) -> None:
        await asyncio.gather(*cycle.tasks.values(), return_exceptions=True)
        if cycle.token.cancelled:
            return
        self._update_map_url(cycle.lat, cycle.lon)
        if self._location_name is None:
            current = self._store.get(Source.CURRENT_WEATHER)
            if isinstance(current, Success) and current.value.name:
                self._location_name = current.value.name
            else:
                self._location_name = UNKNOWN_LOCATION_NAME
        logger.info("Fetch cycle finished", location_name=self._location_name)

    async def _fetch(self, cycle: FetchCycle, source: Source) -> None:
        """Fetch one source and publish its progress.

        Each subtask writes only its own slot. Failures end up in the slot;
        cancellation leaves the slot as it was.
        """
        structlog.contextvars.bind_contextvars(source=source.value)

        try:
            endpoint = SOURCE_ENDPOINTS[source](lat=cycle.lat, lon=cycle.lon)
            cached = self._service.cached(endpoint)
            if cached is not None:
                logger.info("Cache hit", cache_hit=True)
                self._store.publish(cycle.cycle_id, source, Success(cached))
                return

            logger.info("Cache miss, fetching from upstream", cache_hit=False)
            self._store.publish(cycle.cycle_id, source, Loading(PROGRESS_STARTED))

            if self._simulated_latency > 0:
                await asyncio.sleep(self._simulated_latency)

            cycle.token.raise_if_cancelled()
            self._store.publish(cycle.cycle_id, source, Loading(PROGRESS_REQUESTING))

            value = await self._service.resolve(endpoint)

            cycle.token.raise_if_cancelled()
            self._service.store(endpoint, value)
            self._store.publish(cycle.cycle_id, source, Success(value))

        except FetchCancelled:
            logger.debug("Fetch cancelled")

        except WeatherError as e:
            logger.warning("Fetch failed", error_kind=e.kind.value, error=str(e))
            self._store.publish(cycle.cycle_id, source, Failure(e))

        except Exception as e:
            logger.exception("Unexpected error during fetch")
            self._store.publish(cycle.cycle_id, source, Failure(UnknownError(str(e), e)))

    def _update_map_url(self, lat: float, lon: float) -> None:
        try:
            x, y = tile_for(lat, lon, self._map_zoom)
            self._map_url = self._service.client.map_tile_url(self._map_layer, self._map_zoom, x, y)
        except WeatherError as e:
            self._map_url = None
            logger.warning("Map tile URL unavailable", error=str(e))
