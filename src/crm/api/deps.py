"""FastAPI dependency injection for application-scoped services.

The record store and the transition gate are built once in the app lifespan
and kept on app.state; endpoints receive them through these dependencies.
"""

from __future__ import annotations

import structlog
from fastapi import HTTPException, Request, status

from src.crm.pipeline.transitions import TransitionGate
from src.crm.records.errors import (
    RecordNotFoundError,
    RecordStoreError,
    RecordValidationError,
)
from src.crm.records.store import RecordStore

logger = structlog.get_logger(__name__)


def get_record_store(request: Request) -> RecordStore:
    """Retrieve the RecordStore from app.state, 503 if not available."""
    store = getattr(request.app.state, "record_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Record store not initialized",
        )
    return store


def get_transition_gate(request: Request) -> TransitionGate:
    """Retrieve the shared TransitionGate, creating it on first use."""
    gate = getattr(request.app.state, "transition_gate", None)
    if gate is None:
        gate = TransitionGate()
        request.app.state.transition_gate = gate
    return gate


def store_http_error(exc: RecordStoreError) -> HTTPException:
    """Map a record store failure to the HTTP error returned to the client.

    RecordNotFoundError -> 404, RecordValidationError -> 422, anything else
    (unreachable backend, malformed upstream response) -> 502.
    """
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, RecordValidationError):
        return HTTPException(
            status_code=422,
            detail=exc.errors,
        )
    logger.error("api.record_store_failed", error=str(exc), error_type=type(exc).__name__)
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail="Record store unavailable",
    )
