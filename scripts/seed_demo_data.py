#!/usr/bin/env python3
"""CLI script to seed the SQL record store with demo CRM data.

Usage:
    uv run python scripts/seed_demo_data.py
    uv run python scripts/seed_demo_data.py --database-url sqlite+aiosqlite:///./crm.db --deals-only

Connects using DATABASE_URL from environment or .env file (or --database-url).
Creates the tables if needed, then inserts demo contacts, deals, tasks and
activities through the record store so every row passes write validation.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Ensure project root is on sys.path so we can import src.crm
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv  # noqa: E402

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

_SERVER_FIELDS = {"id", "created_at", "updated_at", "last_activity"}


def _payload(row: dict) -> dict:
    return {k: v for k, v in row.items() if k not in _SERVER_FIELDS}


async def seed(database_url: str | None, deals_only: bool) -> None:
    """Insert the demo records, remapping demo ids to the ids the database assigns."""
    from sqlalchemy.ext.asyncio import AsyncSession

    from src.crm.core.database import build_engine, get_engine, init_db
    from src.crm.records.demo import demo_seed
    from src.crm.records.schemas import EntityKind
    from src.crm.records.sql import SqlRecordStore

    engine = build_engine(database_url) if database_url else get_engine()
    await init_db(engine)

    async def session_factory():
        async with AsyncSession(engine, expire_on_commit=False) as session:
            yield session

    store = SqlRecordStore(session_factory)
    data = demo_seed()
    contact_ids: dict[int, int] = {}
    deal_ids: dict[int, int] = {}

    for row in data[EntityKind.CONTACT]:
        contact = await store.create_contact(_payload(row))
        contact_ids[row["id"]] = contact.id
    print(f"Contacts created: {len(contact_ids)}")

    for row in data[EntityKind.DEAL]:
        payload = _payload(row)
        payload["contact_id"] = contact_ids.get(row["contact_id"])
        deal = await store.create_deal(payload)
        deal_ids[row["id"]] = deal.id
    print(f"Deals created:    {len(deal_ids)}")

    if not deals_only:
        for kind, label in ((EntityKind.TASK, "Tasks"), (EntityKind.ACTIVITY, "Activities")):
            rows = data[kind]
            for row in rows:
                payload = _payload(row)
                payload["contact_id"] = contact_ids.get(row["contact_id"])
                payload["deal_id"] = deal_ids.get(row["deal_id"])
                await store.create(kind, payload)
            print(f"{label} created: {len(rows)}")

    # Clean up
    await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the CRM database with demo data")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    parser.add_argument(
        "--deals-only",
        action="store_true",
        help="Only seed contacts and deals (skip tasks and activities)",
    )
    args = parser.parse_args()

    asyncio.run(seed(args.database_url, args.deals_only))


if __name__ == "__main__":
    main()
