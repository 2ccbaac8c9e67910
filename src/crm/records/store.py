"""Record store abstract base class -- the CRUD contract every backend implements.

The pipeline board, the dashboard and the HTTP API only ever talk to a
RecordStore instance that is built once per application session and passed
in explicitly. Backends:
- InMemoryRecordStore: local mock array (tests, demos)
- SqlRecordStore: SQLAlchemy async ORM (PostgreSQL in production)
- RemoteTableRecordStore: hosted table API over httpx

Subclasses implement the five generic operations. The typed helpers
(list_deals, update_deal, ...) coerce raw mappings into validated payloads
first, so backends only ever see data that satisfies the entity invariants.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from src.crm.records.errors import RecordValidationError
from src.crm.records.schemas import (
    ActivityRead,
    ContactRead,
    DealRead,
    EntityKind,
    PartialUpdate,
    QuoteRead,
    TaskRead,
    validate_create,
    validate_update,
)

Payload = BaseModel | Mapping[str, Any]


class RecordStore(ABC):
    """Abstract interface for CRM record storage.

    Methods:
        list_records: All records of a kind, newest first.
        get_record: One record by id (RecordNotFoundError if absent).
        create_record: Insert a validated create payload, return the stored record.
        update_record: Merge a validated partial update, return the full record.
        delete_record: Remove a record by id (RecordNotFoundError if absent).
    """

    backend_name: str = "abstract"

    @abstractmethod
    async def list_records(self, kind: EntityKind) -> list[BaseModel]:
        """List all records of a kind, newest first."""
        ...

    @abstractmethod
    async def get_record(self, kind: EntityKind, record_id: int) -> BaseModel:
        """Fetch a record by id."""
        ...

    @abstractmethod
    async def create_record(self, kind: EntityKind, data: BaseModel) -> BaseModel:
        """Create a record from a validated create payload."""
        ...

    @abstractmethod
    async def update_record(
        self, kind: EntityKind, record_id: int, data: PartialUpdate
    ) -> BaseModel:
        """Apply only the supplied fields of data to the record."""
        ...

    @abstractmethod
    async def delete_record(self, kind: EntityKind, record_id: int) -> None:
        """Delete a record by id."""
        ...

    async def ping(self) -> bool:
        """Readiness check. Backends with a remote dependency override this."""
        return True

    async def close(self) -> None:
        """Release backend resources (connections, HTTP clients)."""
        return None

    # ── Validated entry points ──────────────────────────────────────────────

    async def create(self, kind: EntityKind, data: Payload) -> BaseModel:
        return await self.create_record(kind, validate_create(kind, data))

    async def update(self, kind: EntityKind, record_id: int, fields: Payload) -> BaseModel:
        data = validate_update(kind, fields)
        if kind is EntityKind.QUOTE:
            await self._check_quote_dates(record_id, data)
        return await self.update_record(kind, record_id, data)

    async def _check_quote_dates(self, quote_id: int, data: PartialUpdate) -> None:
        """Reject an update that would leave expires_on on or before quote_date.

        A partial update may carry only one of the two dates, so the check
        runs against the stored quote merged with the supplied fields.
        """
        changes = data.changes()
        if not {"quote_date", "expires_on"} & changes.keys():
            return

        current = await self.get_record(EntityKind.QUOTE, quote_id)
        quote_date = changes.get("quote_date", current.quote_date)
        expires_on = changes.get("expires_on", current.expires_on)
        if quote_date and expires_on and expires_on <= quote_date:
            raise RecordValidationError(
                EntityKind.QUOTE.value,
                [{"loc": ("expires_on",), "msg": "expires_on must be after quote_date"}],
            )

    # ── Deals ───────────────────────────────────────────────────────────────

    async def list_deals(self) -> list[DealRead]:
        return await self.list_records(EntityKind.DEAL)  # type: ignore[return-value]

    async def get_deal(self, deal_id: int) -> DealRead:
        return await self.get_record(EntityKind.DEAL, deal_id)  # type: ignore[return-value]

    async def create_deal(self, data: Payload) -> DealRead:
        return await self.create(EntityKind.DEAL, data)  # type: ignore[return-value]

    async def update_deal(self, deal_id: int, fields: Payload) -> DealRead:
        """Merge fields into the deal and return the full updated record.

        Raises:
            RecordNotFoundError: deal_id does not exist.
            RecordValidationError: a supplied field violates the deal invariants.
        """
        return await self.update(EntityKind.DEAL, deal_id, fields)  # type: ignore[return-value]

    async def delete_deal(self, deal_id: int) -> None:
        await self.delete_record(EntityKind.DEAL, deal_id)

    # ── Contacts ────────────────────────────────────────────────────────────

    async def list_contacts(self) -> list[ContactRead]:
        return await self.list_records(EntityKind.CONTACT)  # type: ignore[return-value]

    async def get_contact(self, contact_id: int) -> ContactRead:
        return await self.get_record(EntityKind.CONTACT, contact_id)  # type: ignore[return-value]

    async def create_contact(self, data: Payload) -> ContactRead:
        return await self.create(EntityKind.CONTACT, data)  # type: ignore[return-value]

    async def update_contact(self, contact_id: int, fields: Payload) -> ContactRead:
        return await self.update(EntityKind.CONTACT, contact_id, fields)  # type: ignore[return-value]

    async def delete_contact(self, contact_id: int) -> None:
        await self.delete_record(EntityKind.CONTACT, contact_id)

    # ── Tasks ───────────────────────────────────────────────────────────────

    async def list_tasks(self) -> list[TaskRead]:
        return await self.list_records(EntityKind.TASK)  # type: ignore[return-value]

    async def get_task(self, task_id: int) -> TaskRead:
        return await self.get_record(EntityKind.TASK, task_id)  # type: ignore[return-value]

    async def create_task(self, data: Payload) -> TaskRead:
        return await self.create(EntityKind.TASK, data)  # type: ignore[return-value]

    async def update_task(self, task_id: int, fields: Payload) -> TaskRead:
        return await self.update(EntityKind.TASK, task_id, fields)  # type: ignore[return-value]

    async def delete_task(self, task_id: int) -> None:
        await self.delete_record(EntityKind.TASK, task_id)

    # ── Activities ──────────────────────────────────────────────────────────

    async def list_activities(self) -> list[ActivityRead]:
        return await self.list_records(EntityKind.ACTIVITY)  # type: ignore[return-value]

    async def get_activity(self, activity_id: int) -> ActivityRead:
        return await self.get_record(EntityKind.ACTIVITY, activity_id)  # type: ignore[return-value]

    async def create_activity(self, data: Payload) -> ActivityRead:
        return await self.create(EntityKind.ACTIVITY, data)  # type: ignore[return-value]

    async def update_activity(self, activity_id: int, fields: Payload) -> ActivityRead:
        return await self.update(EntityKind.ACTIVITY, activity_id, fields)  # type: ignore[return-value]

    async def delete_activity(self, activity_id: int) -> None:
        await self.delete_record(EntityKind.ACTIVITY, activity_id)

    # ── Quotes ──────────────────────────────────────────────────────────────

    async def list_quotes(self) -> list[QuoteRead]:
        return await self.list_records(EntityKind.QUOTE)  # type: ignore[return-value]

    async def get_quote(self, quote_id: int) -> QuoteRead:
        return await self.get_record(EntityKind.QUOTE, quote_id)  # type: ignore[return-value]

    async def create_quote(self, data: Payload) -> QuoteRead:
        return await self.create(EntityKind.QUOTE, data)  # type: ignore[return-value]

    async def update_quote(self, quote_id: int, fields: Payload) -> QuoteRead:
        return await self.update(EntityKind.QUOTE, quote_id, fields)  # type: ignore[return-value]

    async def delete_quote(self, quote_id: int) -> None:
        await self.delete_record(EntityKind.QUOTE, quote_id)


# ── Timestamp helpers shared by backends ────────────────────────────────────


def creation_stamps(kind: EntityKind, now: datetime) -> dict[str, datetime]:
    """Server-assigned timestamps for a new record of kind."""
    stamps = {"created_at": now}
    if kind is EntityKind.DEAL:
        stamps["updated_at"] = now
    elif kind is EntityKind.CONTACT:
        stamps["last_activity"] = now
    return stamps


def update_stamps(kind: EntityKind, now: datetime) -> dict[str, datetime]:
    """Server-assigned timestamps refreshed on every update of kind."""
    if kind is EntityKind.DEAL:
        return {"updated_at": now}
    return {}
