"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, Sentry,
lifespan events for record store initialization, and the v1 API router.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.crm.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.crm.api.v1.router import router as v1_router
from src.crm.config import RecordStoreBackend, Settings, get_settings
from src.crm.core.database import close_db, get_session, init_db
from src.crm.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.crm.pipeline.transitions import TransitionGate
from src.crm.records.demo import demo_seed
from src.crm.records.memory import InMemoryRecordStore
from src.crm.records.remote import RemoteTableRecordStore
from src.crm.records.sql import SqlRecordStore
from src.crm.records.store import RecordStore


async def build_record_store(settings: Settings) -> RecordStore:
    """Construct the record store selected by RECORD_STORE_BACKEND."""
    backend = settings.RECORD_STORE_BACKEND

    if backend == RecordStoreBackend.memory:
        return InMemoryRecordStore(seed=demo_seed() if settings.SEED_DEMO_DATA else None)

    if backend == RecordStoreBackend.remote:
        if not settings.REMOTE_STORE_URL:
            raise RuntimeError("REMOTE_STORE_URL must be set for the remote record store")
        return RemoteTableRecordStore(
            settings.REMOTE_STORE_URL,
            settings.REMOTE_STORE_PROJECT_ID,
            settings.REMOTE_STORE_PUBLIC_KEY,
            timeout=settings.REMOTE_STORE_TIMEOUT,
            max_retries=settings.REMOTE_STORE_MAX_RETRIES,
        )

    await init_db()
    return SqlRecordStore(get_session)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build the record store on startup, close on shutdown."""
    import structlog

    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()

    # Initialize Sentry if DSN is configured
    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    store = await build_record_store(settings)
    app.state.record_store = store
    app.state.transition_gate = TransitionGate()
    log.info("app.record_store_ready", backend=store.backend_name)

    yield

    await store.close()
    if settings.RECORD_STORE_BACKEND == RecordStoreBackend.sql:
        await close_db()
    log.info("app.shutdown_complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Sales Pipeline CRM API",
        version="0.1.0",
        description="Contacts, deals, tasks, activities and quotes with a drag-and-drop pipeline board",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    # Include v1 API router (health, contacts, deals, pipeline, ...)
    app.include_router(v1_router)

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
