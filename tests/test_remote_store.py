"""Tests for RemoteTableRecordStore using httpx.MockTransport.

No network: every test wires a handler function into the client and
inspects the requests it receives. Retries use wait_none() so they run
instantly.
"""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest
from tenacity import wait_none

from src.crm.records.errors import (
    RecordNotFoundError,
    RecordStoreError,
    RecordStoreUnavailableError,
    RecordValidationError,
)
from src.crm.records.remote import RemoteTableRecordStore
from src.crm.records.schemas import EntityKind

BASE_URL = "https://crm.test/v1"


def _store(handler: Callable[[httpx.Request], httpx.Response], max_retries: int = 3) -> RemoteTableRecordStore:
    client = httpx.AsyncClient(
        base_url=BASE_URL,
        transport=httpx.MockTransport(handler),
        headers={"X-Project-Id": "proj", "X-Public-Key": "key"},
    )
    return RemoteTableRecordStore(BASE_URL, client=client, max_retries=max_retries, wait=wait_none())


def _remote_deal(deal_id: int = 1, **overrides) -> dict:
    record = {
        "Id": deal_id,
        "Name": "Deal",
        "title_c": "Deal",
        "value_c": 1000.0,
        "stage_c": "lead",
        "probability_c": 10,
        "contact_id_c": {"Id": 2, "Name": "Ada Lovelace"},
        "expected_close_date_c": "2025-03-01",
        "description_c": None,
        "created_at_c": "2025-01-01T00:00:00Z",
        "updated_at_c": "2025-01-01T00:00:00Z",
    }
    record.update(overrides)
    return record


def _ok(data=None, results=None, status_code: int = 200) -> httpx.Response:
    body: dict = {"success": True}
    if data is not None:
        body["data"] = data
    if results is not None:
        body["results"] = results
    return httpx.Response(status_code, json=body)


# ── Reads ───────────────────────────────────────────────────────────────────


class TestReads:
    @pytest.mark.asyncio
    async def test_list_deals(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _ok(data=[_remote_deal(2, stage_c="proposal"), _remote_deal(1)])

        store = _store(handler)
        deals = await store.list_deals()

        assert [d.id for d in deals] == [2, 1]
        assert deals[0].stage == "proposal"
        assert deals[1].contact_id == 2
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/v1/tables/deal_c/records"
        assert request.url.params["orderBy"] == "Id"
        assert request.url.params["sortType"] == "DESC"
        assert request.headers["X-Project-Id"] == "proj"

    @pytest.mark.asyncio
    async def test_get_deal(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/tables/deal_c/records/5"
            return _ok(data=_remote_deal(5))

        deal = await _store(handler).get_deal(5)

        assert deal.id == 5
        assert deal.value == 1000.0

    @pytest.mark.asyncio
    async def test_get_missing_deal_404(self):
        store = _store(lambda request: httpx.Response(404, json={"success": False, "message": "Not found"}))

        with pytest.raises(RecordNotFoundError):
            await store.get_deal(9)

    @pytest.mark.asyncio
    async def test_get_missing_deal_empty_data(self):
        store = _store(lambda request: _ok(data={}))

        with pytest.raises(RecordNotFoundError):
            await store.get_deal(9)

    @pytest.mark.asyncio
    async def test_non_json_success_is_store_error(self):
        store = _store(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(RecordStoreError):
            await store.list_deals()

    @pytest.mark.asyncio
    async def test_malformed_record_is_store_error(self):
        store = _store(lambda request: _ok(data=[{"Id": "not-a-number"}]))

        with pytest.raises(RecordStoreError):
            await store.list_deals()


# ── Writes ──────────────────────────────────────────────────────────────────


class TestWrites:
    @pytest.mark.asyncio
    async def test_create_deal_sends_remote_columns(self):
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return _ok(results=[{"success": True, "data": _remote_deal(11, title_c="New", Name="New")}])

        created = await _store(handler).create_deal({"title": "New", "value": 10})

        assert created.id == 11
        record = bodies[0]["records"][0]
        assert record["Name"] == "New"
        assert record["title_c"] == "New"
        assert record["value_c"] == 10.0
        assert record["stage_c"] == "lead"
        assert "created_at_c" in record
        assert "id" not in record

    @pytest.mark.asyncio
    async def test_stage_update_sends_only_stage(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return _ok(results=[{"success": True, "data": _remote_deal(3, stage_c="qualified")}])

        updated = await _store(handler).update_deal(3, {"stage": "qualified"})

        assert updated.stage == "qualified"
        assert updated.title == "Deal"
        assert requests[0].method == "PATCH"
        record = json.loads(requests[0].content)["records"][0]
        assert set(record) == {"Id", "stage_c", "updated_at_c"}
        assert record["Id"] == 3

    @pytest.mark.asyncio
    async def test_partial_echo_triggers_reread(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.method == "PATCH":
                return _ok(results=[{"success": True, "data": {"Id": 3, "stage_c": "qualified"}}])
            return _ok(data=_remote_deal(3, stage_c="qualified"))

        updated = await _store(handler).update_deal(3, {"stage": "qualified"})

        assert [r.method for r in requests] == ["PATCH", "GET"]
        assert updated.value == 1000.0

    @pytest.mark.asyncio
    async def test_failed_result_is_validation_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return _ok(results=[{"success": False, "message": "stage_c is read-only"}])

        with pytest.raises(RecordValidationError, match="stage_c is read-only"):
            await _store(handler).update_deal(3, {"stage": "qualified"})

    @pytest.mark.asyncio
    async def test_failed_envelope_is_validation_error(self):
        store = _store(lambda request: httpx.Response(400, json={"success": False, "message": "Bad field"}))

        with pytest.raises(RecordValidationError, match="Bad field"):
            await store.create_deal({"title": "x", "value": 1})

    @pytest.mark.asyncio
    async def test_update_missing_deal(self):
        store = _store(lambda request: httpx.Response(404, json={"success": False}))

        with pytest.raises(RecordNotFoundError):
            await store.update_deal(3, {"stage": "qualified"})

    @pytest.mark.asyncio
    async def test_invalid_update_never_reaches_the_api(self):
        calls: list[httpx.Request] = []
        store = _store(lambda request: calls.append(request) or _ok())

        with pytest.raises(RecordValidationError):
            await store.update_deal(3, {"stage": "archived"})

        assert calls == []

    @pytest.mark.asyncio
    async def test_delete(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return _ok(results=[{"success": True}])

        await _store(handler).delete_record(EntityKind.TASK, 8)

        assert requests[0].method == "DELETE"
        assert requests[0].url.path == "/v1/tables/task_c/records"
        assert json.loads(requests[0].content) == {"RecordIds": [8]}


# ── Retries ─────────────────────────────────────────────────────────────────


class TestRetries:
    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) < 3:
                return httpx.Response(503)
            return _ok(data=[_remote_deal(1)])

        deals = await _store(handler).list_deals()

        assert len(attempts) == 3
        assert [d.id for d in deals] == [1]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RecordStoreUnavailableError):
            await _store(handler, max_retries=2).list_deals()

        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            return httpx.Response(422, json={"success": False, "message": "nope"})

        with pytest.raises(RecordValidationError):
            await _store(handler).list_deals()

        assert len(attempts) == 1


# ── Health ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_ping():
    assert await _store(lambda request: _ok(data=[])).ping() is True
    assert await _store(lambda request: httpx.Response(500)).ping() is False


@pytest.mark.asyncio
async def test_close_closes_client():
    store = _store(lambda request: _ok(data=[]))
    await store.close()
    assert store._client.is_closed
