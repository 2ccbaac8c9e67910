"""Health check endpoints.

Provides liveness (/health) and readiness (/health/ready) checks. Readiness
verifies the configured record store backend is reachable.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.crm.config import get_settings

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check.

    No external dependencies are checked -- just that the server is running.
    """
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check: verifies the record store answers.

    Returns 200 if it does, 503 if the store is missing or unreachable.
    """
    store = getattr(request.app.state, "record_store", None)
    checks: dict = {"record_store": "ok"}

    if store is None:
        checks["record_store"] = "not_initialized"
    else:
        checks["backend"] = store.backend_name
        try:
            if not await store.ping():
                checks["record_store"] = "error"
        except Exception as e:
            checks["record_store"] = "error"
            checks["record_store_error"] = str(e)

    ready = checks["record_store"] == "ok"
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "degraded",
            "checks": checks,
        },
    )
