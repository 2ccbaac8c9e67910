"""Structured request logging middleware.

Logs every request with:
- method, path, status_code, duration_ms
- request_id (taken from an incoming X-Request-ID header or generated, and
  echoed back on the response)

The request_id is bound into structlog's contextvars for the lifetime of the
request, so record store and pipeline events logged while handling it
(record_store.record_updated, pipeline.transition_rejected, ...) carry the
same id.

Uses structlog for structured JSON logging in production and
human-readable console output in development.
"""

from __future__ import annotations

import logging
import time
import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.crm.config import Environment, get_settings

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Health and scrape endpoints: completed requests to these log at debug
_QUIET_PATHS = frozenset({"/api/v1/health", "/api/v1/health/ready", "/metrics"})


def configure_structlog() -> None:
    """Configure structlog processors and the stdlib root level from settings."""
    settings = get_settings()

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.ENVIRONMENT == Environment.production:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    logging.basicConfig(format="%(message)s", level=settings.LOG_LEVEL.upper())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request once it completes and tags the response with its id."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start_time = time.monotonic()

        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                "request_error",
                method=request.method,
                path=request.url.path,
                status_code=500,
                duration_ms=_elapsed_ms(start_time),
            )
            raise
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id

        if response.status_code >= 500:
            log_method = logger.error
        elif response.status_code >= 400:
            log_method = logger.warning
        elif request.url.path in _QUIET_PATHS:
            log_method = logger.debug
        else:
            log_method = logger.info

        log_method(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=_elapsed_ms(start_time),
            request_id=request_id,
        )
        return response


def _elapsed_ms(start_time: float) -> float:
    return round((time.monotonic() - start_time) * 1000, 2)
