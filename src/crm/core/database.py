"""Async SQLAlchemy engine and session factory for the SQL record store.

Provides:
- Base: Declarative base for all CRM tables
- get_engine(): Lazily created async engine singleton
- get_session(): Async generator yielding an AsyncSession
- init_db() / close_db(): Table creation on startup, engine disposal on shutdown
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.crm.config import get_settings

# ── Module-level engine (lazy init) ────────────────────────────────────────

_engine: AsyncEngine | None = None


def build_engine(url: str) -> AsyncEngine:
    """Create an async engine, sizing the pool only for server databases."""
    kwargs: dict[str, Any] = {"echo": False}
    if not url.startswith("sqlite"):
        kwargs.update(pool_size=20, max_overflow=10, pool_pre_ping=True)
    return create_async_engine(url, **kwargs)


def get_engine() -> AsyncEngine:
    """Get or create the async engine singleton."""
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings().DATABASE_URL)
    return _engine


# ── Declarative Base ────────────────────────────────────────────────────────


class Base(DeclarativeBase):
    """Base class for CRM record tables."""


# ── Session Factory ─────────────────────────────────────────────────────────


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an AsyncSession bound to the application engine."""
    engine = get_engine()
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


# ── Database Initialization ─────────────────────────────────────────────────


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all CRM tables if they don't exist."""
    # Register the table models on Base.metadata before create_all
    from src.crm.records import models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine and close all connections."""
    global _engine
    if _engine:
        await _engine.dispose()
        _engine = None
