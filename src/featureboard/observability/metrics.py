"""Prometheus metrics for the Featureboard FastAPI backend.

Adds an HTTP middleware that records request latency per method/path/status
and a counter of LLM call outcomes, so fallbacks can be told apart by cause.
"""

from __future__ import annotations

import time
from typing import Callable, Awaitable

from prometheus_client import Counter, Histogram
from starlette.requests import Request
from starlette.responses import Response

# Histogram buckets chosen for web latencies (seconds); LLM-backed routes sit at the top end
REQUEST_LATENCY = Histogram(
    "featureboard_request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("method", "path", "status"),
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)

UNMATCHED_ROUTE = "/unmatched"

LLM_REQUESTS = Counter(
    "featureboard_llm_requests_total",
    "LLM-backed operations by outcome",
    labelnames=("operation", "outcome"),
)


def record_llm_outcome(operation: str, outcome: str) -> None:
    LLM_REQUESTS.labels(operation=operation, outcome=outcome).inc()


def route_label(request: Request) -> str:
    """Label a request by its matched route template (e.g., /projects/{project_id}).

    Requests that matched no route share the single ``UNMATCHED_ROUTE`` label
    so scanners and typos cannot grow the series set.
    """
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path if path else UNMATCHED_ROUTE


def metrics_middleware_factory() -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    async def middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        # Avoid observing the metrics endpoint itself
        if request.url.path.endswith("/metrics"):
            return await call_next(request)
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        # The router fills scope["route"] while handling the request
        REQUEST_LATENCY.labels(
            method=request.method,
            path=route_label(request),
            status=str(response.status_code),
        ).observe(elapsed)
        return response

    return middleware
