"""Integration tests for the record CRUD endpoints and health checks.

Covers contacts, deals, tasks, activities and quotes over an
InMemoryRecordStore, plus the store error -> HTTP status mapping.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.crm.records.errors import RecordStoreError, RecordValidationError
from src.crm.records.memory import InMemoryRecordStore
from src.crm.records.schemas import EntityKind


def _make_app() -> FastAPI:
    from src.crm.api.v1.router import router

    app = FastAPI()
    app.include_router(router)
    return app


@pytest_asyncio.fixture
async def client_and_store():
    app = _make_app()
    store = InMemoryRecordStore(
        seed={
            EntityKind.CONTACT: [
                {"id": 1, "first_name": "Sarah", "last_name": "Johnson", "email": "s@techcorp.com",
                 "phone": "1", "company": "TechCorp"},
            ],
        }
    )
    app.state.record_store = store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client, store


# ── Deals ───────────────────────────────────────────────────────────────────


class TestDeals:
    @pytest.mark.asyncio
    async def test_crud_cycle(self, client_and_store):
        client, _ = client_and_store

        response = await client.post("/api/v1/deals", json={"title": "Big", "value": 900, "contact_id": 1})
        assert response.status_code == 201
        deal = response.json()
        assert deal["stage"] == "lead"
        assert deal["probability"] == 10

        response = await client.patch(f"/api/v1/deals/{deal['id']}", json={"stage": "negotiation"})
        assert response.status_code == 200
        assert response.json()["stage"] == "negotiation"
        assert response.json()["value"] == 900

        response = await client.get(f"/api/v1/deals/{deal['id']}")
        assert response.json()["stage"] == "negotiation"

        response = await client.delete(f"/api/v1/deals/{deal['id']}")
        assert response.status_code == 204

        response = await client.get(f"/api/v1/deals/{deal['id']}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_search(self, client_and_store):
        client, _ = client_and_store
        await client.post("/api/v1/deals", json={"title": "Linked", "value": 1, "contact_id": 1})
        await client.post("/api/v1/deals", json={"title": "Other", "value": 1})

        response = await client.get("/api/v1/deals", params={"q": "sarah"})

        assert [d["title"] for d in response.json()] == ["Linked"]
        assert len((await client.get("/api/v1/deals")).json()) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"title": "x", "value": -1},
            {"title": "x", "value": 1, "probability": 101},
            {"title": "x", "value": 1, "stage": "archived"},
            {"value": 1},
        ],
    )
    async def test_create_validation(self, client_and_store, body):
        client, _ = client_and_store

        response = await client.post("/api/v1/deals", json=body)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_update_rejects_null_stage(self, client_and_store):
        client, _ = client_and_store
        deal = (await client.post("/api/v1/deals", json={"title": "x", "value": 1})).json()

        response = await client.patch(f"/api/v1/deals/{deal['id']}", json={"stage": None})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_update_missing_is_404(self, client_and_store):
        client, _ = client_and_store

        response = await client.patch("/api/v1/deals/77", json={"title": "x"})

        assert response.status_code == 404


# ── Other record kinds ──────────────────────────────────────────────────────


class TestContacts:
    @pytest.mark.asyncio
    async def test_create_and_list(self, client_and_store):
        client, _ = client_and_store

        response = await client.post(
            "/api/v1/contacts",
            json={"first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.com", "phone": "2"},
        )
        assert response.status_code == 201
        assert response.json()["id"] == 2

        contacts = (await client.get("/api/v1/contacts")).json()
        assert [c["id"] for c in contacts] == [2, 1]

    @pytest.mark.asyncio
    async def test_invalid_email(self, client_and_store):
        client, _ = client_and_store

        response = await client.post(
            "/api/v1/contacts",
            json={"first_name": "Ada", "last_name": "Lovelace", "email": "not-an-email", "phone": "2"},
        )

        assert response.status_code == 422


class TestTasks:
    @pytest.mark.asyncio
    async def test_create_and_complete(self, client_and_store):
        client, _ = client_and_store

        task = (await client.post("/api/v1/tasks", json={"title": "Call", "due_date": "2025-06-01"})).json()
        assert task["status"] == "pending"
        assert task["priority"] == "medium"

        response = await client.patch(f"/api/v1/tasks/{task['id']}", json={"status": "completed"})
        assert response.json()["status"] == "completed"
        assert response.json()["due_date"] == "2025-06-01"


class TestActivities:
    @pytest.mark.asyncio
    async def test_create_and_list(self, client_and_store):
        client, _ = client_and_store

        response = await client.post(
            "/api/v1/activities",
            json={"type": "meeting", "subject": "Workshop", "description": "On-site", "contact_id": 1},
        )
        assert response.status_code == 201

        activities = (await client.get("/api/v1/activities")).json()
        assert activities[0]["type"] == "meeting"


class TestQuotes:
    @pytest.mark.asyncio
    async def test_expiry_must_follow_quote_date(self, client_and_store):
        client, _ = client_and_store
        body = {"company": "TechCorp", "contact_id": 1, "deal_id": 1, "quote_date": "2025-01-10"}

        bad = await client.post("/api/v1/quotes", json={**body, "expires_on": "2025-01-10"})
        good = await client.post("/api/v1/quotes", json={**body, "expires_on": "2025-01-11"})

        assert bad.status_code == 422
        assert good.status_code == 201
        assert good.json()["status"] == "Draft"


# ── Error mapping ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_store_validation_error_maps_to_422(client_and_store):
    client, store = client_and_store
    store.create_deal = AsyncMock(side_effect=RecordValidationError("deal", "title_c too long"))

    response = await client.post("/api/v1/deals", json={"title": "x", "value": 1})

    assert response.status_code == 422
    assert response.json()["detail"] == [{"msg": "title_c too long"}]


@pytest.mark.asyncio
async def test_store_failure_maps_to_502(client_and_store):
    client, store = client_and_store
    store.list_contacts = AsyncMock(side_effect=RecordStoreError("bad upstream payload"))

    response = await client.get("/api/v1/contacts")

    assert response.status_code == 502
    assert response.json()["detail"] == "Record store unavailable"


# ── Health ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client_and_store):
    client, _ = client_and_store

    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_ready(client_and_store):
    client, store = client_and_store

    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json()["checks"]["backend"] == "memory"

    store.ping = AsyncMock(return_value=False)
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 503
    assert response.json()["status"] == "degraded"


@pytest.mark.asyncio
async def test_quote_patch_with_only_expiry_is_checked(client_and_store):
    client, _ = client_and_store
    quote = (
        await client.post(
            "/api/v1/quotes",
            json={"company": "Acme", "contact_id": 1, "deal_id": 1,
                  "quote_date": "2024-05-10", "expires_on": "2024-06-10"},
        )
    ).json()

    response = await client.patch(f"/api/v1/quotes/{quote['id']}", json={"expires_on": "2024-01-01"})

    assert response.status_code == 422
    assert response.json()["detail"][0]["msg"] == "expires_on must be after quote_date"
    assert (await client.get(f"/api/v1/quotes/{quote['id']}")).json()["expires_on"] == "2024-06-10"
