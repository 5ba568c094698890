"""Per-source loading state and the store that funnels every slot write."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar, Generic, TypeVar

from weather_hub.services.errors import WeatherError

T = TypeVar("T")


class Source(StrEnum):
    """Independent data sources fetched in a cycle."""

    CURRENT_WEATHER = "current_weather"
    FORECAST = "forecast"
    AIR_QUALITY = "air_quality"
    ALERTS = "alerts"


@dataclass(frozen=True)
class Idle:
    terminal: ClassVar[bool] = False


@dataclass(frozen=True)
class Loading:
    progress: float = 0.0

    terminal: ClassVar[bool] = False


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    terminal: ClassVar[bool] = True


@dataclass(frozen=True)
class Failure:
    error: WeatherError

    terminal: ClassVar[bool] = True


LoadingState = Idle | Loading | Success[Any] | Failure

IDLE = Idle()


@dataclass(frozen=True)
class StateUpdate:
    """A slot change as delivered to subscribers."""

    cycle_id: int
    source: Source
    state: LoadingState


class StateStore:
    """Single synchronisation point for the four source slots.

    Every write is tagged with the cycle that produced it. Writes from any
    cycle other than the current one are dropped, so a subtask of an
    abandoned cycle can never overwrite the slots of its successor.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cycle_id = 0
        self._slots: dict[Source, LoadingState] = {source: IDLE for source in Source}
        self._history: dict[Source, list[LoadingState]] = {source: [IDLE] for source in Source}
        self._subscribers: list[asyncio.Queue[StateUpdate]] = []

    @property
    def cycle_id(self) -> int:
        with self._lock:
            return self._cycle_id

    def begin_cycle(self, initial: LoadingState) -> int:
        """Start a new cycle, resetting every slot to ``initial``.

        Returns:
            The new cycle id
        """
        with self._lock:
            self._cycle_id += 1
            cycle_id = self._cycle_id
            for source in Source:
                self._slots[source] = initial
                self._history[source] = [initial]
            subscribers = list(self._subscribers)
        for source in Source:
            self._notify(subscribers, StateUpdate(cycle_id, source, initial))
        return cycle_id

    def publish(self, cycle_id: int, source: Source, state: LoadingState) -> bool:
        """Write a slot on behalf of a cycle.

        Returns:
            False if the write was dropped because the cycle is no longer current
        """
        with self._lock:
            if cycle_id != self._cycle_id:
                return False
            self._slots[source] = state
            self._history[source].append(state)
            subscribers = list(self._subscribers)
        self._notify(subscribers, StateUpdate(cycle_id, source, state))
        return True

    def get(self, source: Source) -> LoadingState:
        with self._lock:
            return self._slots[source]

    def snapshot(self) -> dict[Source, LoadingState]:
        """Return a consistent copy of all four slots."""
        with self._lock:
            return dict(self._slots)

    def history(self, source: Source) -> list[LoadingState]:
        """Return the states a slot went through in the current cycle."""
        with self._lock:
            return list(self._history[source])

    def subscribe(self) -> asyncio.Queue[StateUpdate]:
        """Register a consumer queue that receives every accepted update."""
        queue: asyncio.Queue[StateUpdate] = asyncio.Queue()
        with self._lock:
            self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[StateUpdate]) -> None:
        with self._lock:
            if queue in self._subscribers:
                self._subscribers.remove(queue)

    @staticmethod
    def _notify(subscribers: list[asyncio.Queue[StateUpdate]], update: StateUpdate) -> None:
        for queue in subscribers:
            queue.put_nowait(update)
