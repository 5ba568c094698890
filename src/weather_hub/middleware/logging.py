"""structlog setup and the request middleware.

Context bound with ``structlog.contextvars`` ends up on every event. The
middleware binds the request fields; the orchestrator binds ``cycle_id`` and
the coordinate when a cycle starts, and each fetch task adds its ``source``.
Tasks inherit the context of the request that started them, so cycle events
also carry its ``request_id``.
"""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

from weather_hub.config import Settings

REQUEST_ID_HEADER = "X-Request-ID"

http_requests = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
http_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


def configure_logging(settings: Settings) -> None:
    """Configure structlog from the ``log_level`` and ``log_format`` settings."""
    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings.log_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        # ConsoleRenderer formats exceptions itself
        processors.append(structlog.dev.ConsoleRenderer())

    level = logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO)
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _route_path(request: Request) -> str:
    """Return the route template so metric labels stay low-cardinality."""
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return request.url.path


class LoggingMiddleware(BaseHTTPMiddleware):
    """Binds request context, logs each request and records HTTP metrics."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        path = _route_path(request)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=path
        )
        log = structlog.get_logger()

        start = time.perf_counter()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
        except Exception:
            log.exception("Request failed")
            raise
        finally:
            elapsed = time.perf_counter() - start
            http_requests.labels(method=request.method, path=path, status=status).inc()
            http_duration.labels(method=request.method, path=path).observe(elapsed)

        log.info(
            "Request completed",
            status_code=response.status_code,
            duration_ms=round(elapsed * 1000, 2),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
