from __future__ import annotations

"""Prometheus instrumentation for the GenFeatures API and generation engine.

Requests are labelled by the route template that served them
(``/sessions/{session_id}``), never by the raw path, so ids cannot blow up
label cardinality. The generation services bump the domain counters below.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Mapping, Tuple

from prometheus_client import Counter, Gauge, Histogram
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("genfeatures.metrics")

UNMATCHED_ROUTE = "<unmatched>"

REQUEST_LATENCY = Histogram(
    "genfeatures_request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("method", "route", "status"),
    buckets=(0.005, 0.025, 0.1, 0.25, 1.0, 2.5, 10.0, 30.0),
)

REQUESTS_IN_FLIGHT = Gauge(
    "genfeatures_requests_in_flight",
    "HTTP requests currently being served",
)

ARTIFACTS_FINISHED = Counter(
    "genfeatures_artifacts_finished_total",
    "Artifacts that reached a terminal status",
    labelnames=("status",),
)

DIRECTION_FALLBACKS = Counter(
    "genfeatures_direction_fallbacks_total",
    "Batches that fell back to the default direction labels",
)

VARIATIONS_RECEIVED = Counter(
    "genfeatures_variations_received_total",
    "Well-formed variations received from variation streams",
)


def route_label(scope: Mapping[str, Any]) -> str:
    """Template of the route the router matched, or ``<unmatched>``."""
    route = scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ROUTE


def _observe(request: Request, status_code: int, elapsed: float) -> None:
    try:
        REQUEST_LATENCY.labels(
            method=request.method,
            route=route_label(request.scope),
            status=str(status_code),
        ).observe(elapsed)
    except Exception:
        logger.debug("request_latency_not_recorded", exc_info=True)


def metrics_middleware_factory(
    skip_prefixes: Tuple[str, ...] = ("/metrics",),
) -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    async def middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if request.url.path.startswith(skip_prefixes):
            return await call_next(request)
        REQUESTS_IN_FLIGHT.inc()
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            REQUESTS_IN_FLIGHT.dec()
            _observe(request, status_code, time.perf_counter() - start)

    return middleware
