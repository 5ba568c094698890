"""Cache service for upstream responses."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from cachetools import TLRUCache
from prometheus_client import Counter, Gauge

from weather_hub.config import Settings
from weather_hub.services.endpoints import Endpoint, EndpointKind

# Metrics
cache_hits = Counter("cache_hits_total", "Total cache hits", ["kind"])
cache_misses = Counter("cache_misses_total", "Total cache misses", ["kind"])
cache_size_gauge = Gauge("cache_size", "Current number of cache entries")


@dataclass(frozen=True)
class CacheEntry:
    """A stored value and the timer reading at which it was stored."""

    value: Any
    stored_at: float
    ttl: float


class CacheService:
    """Keyed cache with a TTL chosen by endpoint kind.

    Entries past their TTL are never returned and are dropped lazily. The
    store is bounded by ``cache_max_size`` with least-recently-used eviction.
    """

    def __init__(self, settings: Settings, timer: Callable[[], float] = time.monotonic) -> None:
        """Initialize cache with settings."""
        self._timer = timer
        self._precision = settings.cache_coordinate_precision
        self._ttls = {
            EndpointKind.CURRENT_WEATHER: settings.cache_ttl_current_weather_seconds,
            EndpointKind.FORECAST: settings.cache_ttl_forecast_seconds,
            EndpointKind.AIR_QUALITY: settings.cache_ttl_air_quality_seconds,
            EndpointKind.ALERTS: settings.cache_ttl_alerts_seconds,
            EndpointKind.GEOCODING: settings.cache_ttl_geocoding_seconds,
            EndpointKind.MAP_TILE: settings.cache_ttl_map_tile_seconds,
        }
        self._cache: TLRUCache[str, CacheEntry] = TLRUCache(
            maxsize=settings.cache_max_size,
            ttu=lambda _key, entry, now: now + entry.ttl,
            timer=timer,
        )
        self._lock = threading.Lock()

    def make_key(self, endpoint: Endpoint) -> str:
        """Create cache key from an endpoint.

        Keys start with the endpoint kind so different kinds never collide.
        Coordinates are rounded to ``cache_coordinate_precision`` places.
        """
        return endpoint.cache_key(self._precision)

    def ttl_for(self, kind: EndpointKind) -> float:
        """Return the TTL in seconds for an endpoint kind."""
        return self._ttls[kind]

    def get(self, endpoint: Endpoint) -> Any | None:
        """Get a cached, unexpired value for the endpoint."""
        key = self.make_key(endpoint)
        with self._lock:
            entry = self._cache.get(key)
        if entry is not None:
            cache_hits.labels(kind=endpoint.kind.value).inc()
            return entry.value
        cache_misses.labels(kind=endpoint.kind.value).inc()
        return None

    def set(self, endpoint: Endpoint, value: Any) -> None:
        """Cache a value for the endpoint, replacing any previous entry."""
        key = self.make_key(endpoint)
        entry = CacheEntry(value=value, stored_at=self._timer(), ttl=self.ttl_for(endpoint.kind))
        with self._lock:
            self._cache[key] = entry
            size = len(self._cache)
        cache_size_gauge.set(size)

    def clear(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            self._cache.clear()
        cache_size_gauge.set(0)

    @property
    def size(self) -> int:
        """Return current cache size."""
        with self._lock:
            return len(self._cache)

    def is_healthy(self) -> bool:
        """Check if cache is operational."""
        return self._cache is not None and isinstance(self.size, int)
