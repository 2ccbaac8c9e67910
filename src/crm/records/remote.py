"""Remote table record store -- CRUD against a hosted table API over httpx.

Records live in remote tables (contact_c, deal_c, ...) addressed under
{base_url}/tables/{table}/records. Every response is wrapped in an envelope:

    {"success": bool, "message": str, "data": ..., "results": [
        {"success": bool, "data": ..., "message": str}, ...]}

Key behaviors:
- Transport errors and 5xx responses are retried with exponential backoff
  (tenacity); after the last attempt they surface as RecordStoreUnavailableError
- A failed envelope or failed per-record result -> RecordValidationError
- HTTP 404 or an empty "data" on a single-record read -> RecordNotFoundError
- Field names are converted via field_mapping (the remote side uses "_c" columns)
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ValidationError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from src.crm.core.monitoring import track_store_call
from src.crm.records.errors import (
    RecordNotFoundError,
    RecordStoreError,
    RecordStoreUnavailableError,
    RecordValidationError,
)
from src.crm.records.field_mapping import (
    ID_FIELD,
    NAME_FIELD,
    REMOTE_FIELD_MAP,
    REMOTE_TABLES,
    display_name,
    from_remote_record,
    to_remote_fields,
)
from src.crm.records.schemas import ENTITY_SCHEMAS, EntityKind, PartialUpdate
from src.crm.records.store import RecordStore, creation_stamps, update_stamps

logger = structlog.get_logger(__name__)


class _ServerError(Exception):
    """A 5xx response, raised inside the retry loop so it gets retried."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        super().__init__(f"HTTP {response.status_code}")


class RemoteTableRecordStore(RecordStore):
    """RecordStore backed by the hosted table API.

    Args:
        base_url: API root, e.g. "https://api.example.com/v1".
        project_id: Project identifier sent with every request.
        public_key: Public API key sent with every request.
        timeout: Per-request timeout in seconds.
        max_retries: Total attempts for a request before giving up.
        client: Optional pre-built httpx.AsyncClient (tests inject a
            MockTransport-backed client here).
        wait: Optional tenacity wait strategy. Defaults to exponential
            backoff between 1 and 10 seconds.
    """

    backend_name = "remote"

    def __init__(
        self,
        base_url: str,
        project_id: str = "",
        public_key: str = "",
        *,
        timeout: float = 10.0,
        max_retries: int = 3,
        client: httpx.AsyncClient | None = None,
        wait: wait_base | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={
                "X-Project-Id": project_id,
                "X-Public-Key": public_key,
            },
        )
        self._max_retries = max_retries
        self._wait = wait or wait_exponential(multiplier=1, min=1, max=10)

    # ── Transport ───────────────────────────────────────────────────────────

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send one request, retrying transport errors and 5xx responses."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_retries),
                wait=self._wait,
                retry=retry_if_exception_type((httpx.TransportError, _ServerError)),
            ):
                with attempt:
                    response = await self._client.request(method, url, **kwargs)
                    if response.status_code >= 500:
                        raise _ServerError(response)
                    return response
        except RetryError as exc:
            cause = exc.last_attempt.exception()
            logger.error(
                "remote_store.request_failed",
                method=method,
                url=url,
                attempts=self._max_retries,
                error=str(cause),
            )
            raise RecordStoreUnavailableError(
                f"{method} {url} failed after {self._max_retries} attempts: {cause}"
            ) from cause
        raise RecordStoreUnavailableError(f"{method} {url} was never attempted")

    def _envelope(
        self, kind: EntityKind, response: httpx.Response, record_id: int | None = None
    ) -> dict[str, Any]:
        """Decode the response envelope, mapping failures to store errors."""
        if response.status_code == 404 and record_id is not None:
            raise RecordNotFoundError(kind.value, record_id)

        try:
            envelope = response.json()
        except ValueError:
            envelope = None

        if not isinstance(envelope, dict):
            if response.is_error:
                raise RecordValidationError(kind.value, f"HTTP {response.status_code}")
            raise RecordStoreError(f"Unexpected response format from {response.request.url}")

        if response.is_error or not envelope.get("success", False):
            message = envelope.get("message") or f"HTTP {response.status_code}"
            logger.warning(
                "remote_store.request_rejected",
                kind=kind.value,
                status_code=response.status_code,
                message=message,
            )
            raise RecordValidationError(kind.value, message)

        return envelope

    def _first_result(self, kind: EntityKind, envelope: dict[str, Any]) -> dict[str, Any]:
        """Return the data of the first per-record result, raising on any failure."""
        results = envelope.get("results")
        if not isinstance(results, list) or not results:
            raise RecordStoreError(f"Unexpected response format for {kind.value}")

        failed = [r for r in results if not r.get("success")]
        if failed:
            raise RecordValidationError(
                kind.value, failed[0].get("message") or f"{kind.value} write failed"
            )
        return results[0].get("data") or {}

    def _to_read(self, kind: EntityKind, record: Mapping[str, Any]) -> BaseModel:
        try:
            return ENTITY_SCHEMAS[kind].read.model_validate(from_remote_record(kind, record))
        except ValidationError as exc:
            raise RecordStoreError(f"Malformed {kind.value} record: {exc}") from exc

    @staticmethod
    def _is_complete(kind: EntityKind, record: Mapping[str, Any]) -> bool:
        if ID_FIELD not in record:
            return False
        return all(m["remote_name"] in record for m in REMOTE_FIELD_MAP[kind].values())

    @staticmethod
    def _records_url(kind: EntityKind, record_id: int | None = None) -> str:
        url = f"/tables/{REMOTE_TABLES[kind]}/records"
        return url if record_id is None else f"{url}/{record_id}"

    # ── RecordStore ─────────────────────────────────────────────────────────

    async def list_records(self, kind: EntityKind) -> list[BaseModel]:
        async with track_store_call(self.backend_name, "list_records"):
            response = await self._send(
                "GET",
                self._records_url(kind),
                params={"orderBy": ID_FIELD, "sortType": "DESC"},
            )
            envelope = self._envelope(kind, response)
            return [self._to_read(kind, row) for row in envelope.get("data") or []]

    async def get_record(self, kind: EntityKind, record_id: int) -> BaseModel:
        async with track_store_call(self.backend_name, "get_record"):
            response = await self._send("GET", self._records_url(kind, record_id))
            envelope = self._envelope(kind, response, record_id)
            data = envelope.get("data")
            if not data:
                raise RecordNotFoundError(kind.value, record_id)
            return self._to_read(kind, data)

    async def create_record(self, kind: EntityKind, data: BaseModel) -> BaseModel:
        values = data.model_dump()
        values.update(creation_stamps(kind, datetime.now(timezone.utc)))
        body = to_remote_fields(kind, values)
        body[NAME_FIELD] = display_name(kind, values)

        async with track_store_call(self.backend_name, "create_record"):
            response = await self._send("POST", self._records_url(kind), json={"records": [body]})
            created = self._first_result(kind, self._envelope(kind, response))
            record = self._to_read(kind, created)
        logger.info(
            "record_store.record_created",
            backend=self.backend_name,
            kind=kind.value,
            record_id=record.id,
        )
        return record

    async def update_record(
        self, kind: EntityKind, record_id: int, data: PartialUpdate
    ) -> BaseModel:
        changes = data.changes()
        values = {**changes, **update_stamps(kind, datetime.now(timezone.utc))}
        body: dict[str, Any] = {ID_FIELD: record_id, **to_remote_fields(kind, values)}
        name = display_name(kind, changes)
        if name:
            body[NAME_FIELD] = name

        async with track_store_call(self.backend_name, "update_record"):
            response = await self._send("PATCH", self._records_url(kind), json={"records": [body]})
            if response.status_code == 404:
                raise RecordNotFoundError(kind.value, record_id)
            updated = self._first_result(kind, self._envelope(kind, response, record_id))

        logger.info(
            "record_store.record_updated",
            backend=self.backend_name,
            kind=kind.value,
            record_id=record_id,
            fields=sorted(changes),
        )
        # Some tables echo only the changed columns; re-read for the full record
        if not self._is_complete(kind, updated):
            return await self.get_record(kind, record_id)
        return self._to_read(kind, updated)

    async def delete_record(self, kind: EntityKind, record_id: int) -> None:
        async with track_store_call(self.backend_name, "delete_record"):
            response = await self._send(
                "DELETE", self._records_url(kind), json={"RecordIds": [record_id]}
            )
            if response.status_code == 404:
                raise RecordNotFoundError(kind.value, record_id)
            envelope = self._envelope(kind, response, record_id)
            if envelope.get("results"):
                self._first_result(kind, envelope)
        logger.info(
            "record_store.record_deleted",
            backend=self.backend_name,
            kind=kind.value,
            record_id=record_id,
        )

    async def ping(self) -> bool:
        try:
            response = await self._client.get(
                self._records_url(EntityKind.DEAL), params={"limit": 1}
            )
        except httpx.HTTPError:
            logger.warning("record_store.ping_failed", backend=self.backend_name)
            return False
        return response.status_code < 500

    async def close(self) -> None:
        await self._client.aclose()
