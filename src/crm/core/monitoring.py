"""Prometheus metrics, Sentry integration, and record store call tracking.

Provides:
- MetricsMiddleware: ASGI middleware for HTTP request metrics
- pipeline_stage_transitions_total: Counter of drag-transition outcomes
- track_store_call(): Context manager for record store call metrics
- init_sentry(): Initialize Sentry for the FastAPI app
- get_metrics_response(): Prometheus exposition for the /metrics route
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── HTTP Metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── Record Store Metrics ─────────────────────────────────────────────────────

record_store_requests_total = Counter(
    "record_store_requests_total",
    "Total record store calls",
    ["backend", "operation", "status"],
)

record_store_request_duration_seconds = Histogram(
    "record_store_request_duration_seconds",
    "Record store call duration in seconds",
    ["backend", "operation"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

# ── Pipeline Metrics ─────────────────────────────────────────────────────────

pipeline_stage_transitions_total = Counter(
    "pipeline_stage_transitions_total",
    "Drag-and-drop stage transitions by outcome",
    ["outcome"],
)


# ── Metrics Middleware ───────────────────────────────────────────────────────


class MetricsMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that records Prometheus metrics for every HTTP request.

    Skips the /metrics endpoint itself to avoid self-referential counting.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        # Use the route path pattern if available, otherwise the raw path
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        route = request.scope.get("route")
        endpoint = getattr(route, "path", endpoint)

        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()

        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response


# ── Record Store Metrics Helper ──────────────────────────────────────────────


@asynccontextmanager
async def track_store_call(backend: str, operation: str) -> AsyncGenerator[None, None]:
    """Context manager that tracks record store call metrics.

    Usage:
        async with track_store_call("sql", "update_record"):
            ...

    Records duration in a histogram and the call count by success/error.
    """
    start_time = time.perf_counter()
    status = "success"

    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        duration = time.perf_counter() - start_time

        record_store_requests_total.labels(
            backend=backend,
            operation=operation,
            status=status,
        ).inc()

        record_store_request_duration_seconds.labels(
            backend=backend,
            operation=operation,
        ).observe(duration)


# ── Sentry Integration ───────────────────────────────────────────────────────


def init_sentry(dsn: str, environment: str) -> None:
    """Initialize Sentry SDK with FastAPI/Starlette integrations.

    Args:
        dsn: Sentry DSN string.
        environment: Deployment environment (development, staging, production).
    """
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.starlette import StarletteIntegration

    # Set sample rate based on environment
    traces_sample_rate = 0.1 if environment == "production" else 1.0

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=traces_sample_rate,
        integrations=[
            StarletteIntegration(),
            FastApiIntegration(),
        ],
    )


# ── Metrics Endpoint ─────────────────────────────────────────────────────────


def get_metrics_response() -> Response:
    """Generate Prometheus exposition format response."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
