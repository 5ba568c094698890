"""FastAPI dependencies.

Components are built once by ``create_app`` and kept on ``app.state``;
these providers only look them up.
"""

from typing import Annotated

from fastapi import Depends, Request

from weather_hub.services.cache import CacheService
from weather_hub.services.orchestrator import FetchOrchestrator
from weather_hub.services.state import StateStore


def get_cache_service(request: Request) -> CacheService:
    """Get the application's cache service."""
    cache: CacheService = request.app.state.cache
    return cache


def get_orchestrator(request: Request) -> FetchOrchestrator:
    """Get the application's fetch orchestrator."""
    orchestrator: FetchOrchestrator = request.app.state.orchestrator
    return orchestrator


def get_state_store(
    orchestrator: Annotated[FetchOrchestrator, Depends(get_orchestrator)],
) -> StateStore:
    """Get the state store the orchestrator publishes to."""
    return orchestrator.store


# Type aliases for dependency injection
CacheDep = Annotated[CacheService, Depends(get_cache_service)]
OrchestratorDep = Annotated[FetchOrchestrator, Depends(get_orchestrator)]
StateStoreDep = Annotated[StateStore, Depends(get_state_store)]
