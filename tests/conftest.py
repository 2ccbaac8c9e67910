"""Shared test fixtures.

Provides:
- make_deal(): DealRead builder with sensible defaults
- memory_store: Empty InMemoryRecordStore
- sqlite_session_factory: Session factory over a fresh aiosqlite database
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from src.crm.core.database import build_engine, init_db
from src.crm.records.memory import InMemoryRecordStore
from src.crm.records.schemas import ContactRead, DealRead


def make_deal(deal_id: int, stage: str = "lead", value: float | None = 1000, **overrides: Any) -> DealRead:
    """Build a DealRead without going through a store."""
    fields: dict[str, Any] = {
        "id": deal_id,
        "title": f"Deal {deal_id}",
        "value": value,
        "stage": stage,
        "probability": 10,
    }
    fields.update(overrides)
    return DealRead(**fields)


def make_contact(contact_id: int, first: str = "Ada", last: str = "Lovelace", **overrides: Any) -> ContactRead:
    fields: dict[str, Any] = {
        "id": contact_id,
        "first_name": first,
        "last_name": last,
        "email": f"{first.lower()}@example.com",
        "phone": "555-0100",
    }
    fields.update(overrides)
    return ContactRead(**fields)


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    """Fresh, empty in-memory store."""
    return InMemoryRecordStore()


@pytest_asyncio.fixture
async def sqlite_session_factory(tmp_path):
    """Session factory bound to a throwaway SQLite database with all CRM tables."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'crm.db'}")
    await init_db(engine)

    async def session_factory() -> AsyncGenerator[AsyncSession, None]:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            yield session

    yield session_factory

    await engine.dispose()
