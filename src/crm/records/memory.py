"""In-memory record store -- the local mock array backend.

Used by tests, demos and the API test doubles. Records live in per-kind
dicts keyed by id; every read hands out a deep copy so callers can never
mutate the stored state behind the store's back.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import BaseModel

from src.crm.records.errors import RecordNotFoundError
from src.crm.records.schemas import ENTITY_SCHEMAS, EntityKind, PartialUpdate
from src.crm.records.store import RecordStore, creation_stamps, update_stamps

logger = structlog.get_logger(__name__)


class InMemoryRecordStore(RecordStore):
    """RecordStore backed by plain dicts.

    Args:
        seed: Optional initial records per kind. Each record must carry an
            "id"; new ids continue after the highest seeded id.
    """

    backend_name = "memory"

    def __init__(
        self, seed: Mapping[EntityKind, Iterable[Mapping[str, Any]]] | None = None
    ) -> None:
        self._records: dict[EntityKind, dict[int, BaseModel]] = {kind: {} for kind in EntityKind}
        self._next_id: dict[EntityKind, int] = {kind: 1 for kind in EntityKind}
        for kind, rows in (seed or {}).items():
            kind = EntityKind(kind)
            read_model = ENTITY_SCHEMAS[kind].read
            for row in rows:
                record = read_model.model_validate(dict(row))
                self._records[kind][record.id] = record
                self._next_id[kind] = max(self._next_id[kind], record.id + 1)

    async def list_records(self, kind: EntityKind) -> list[BaseModel]:
        records = self._records[kind]
        return [records[record_id].model_copy(deep=True) for record_id in sorted(records, reverse=True)]

    async def get_record(self, kind: EntityKind, record_id: int) -> BaseModel:
        return self._require(kind, record_id).model_copy(deep=True)

    async def create_record(self, kind: EntityKind, data: BaseModel) -> BaseModel:
        record_id = self._next_id[kind]
        self._next_id[kind] += 1

        now = datetime.now(timezone.utc)
        values = data.model_dump()
        values.update(creation_stamps(kind, now))
        values["id"] = record_id

        record = ENTITY_SCHEMAS[kind].read.model_validate(values)
        self._records[kind][record_id] = record
        logger.info("record_store.record_created", backend=self.backend_name, kind=kind.value, record_id=record_id)
        return record.model_copy(deep=True)

    async def update_record(
        self, kind: EntityKind, record_id: int, data: PartialUpdate
    ) -> BaseModel:
        current = self._require(kind, record_id)
        changes = data.changes()

        values = current.model_dump()
        values.update(changes)
        values.update(update_stamps(kind, datetime.now(timezone.utc)))

        record = ENTITY_SCHEMAS[kind].read.model_validate(values)
        self._records[kind][record_id] = record
        logger.info(
            "record_store.record_updated",
            backend=self.backend_name,
            kind=kind.value,
            record_id=record_id,
            fields=sorted(changes),
        )
        return record.model_copy(deep=True)

    async def delete_record(self, kind: EntityKind, record_id: int) -> None:
        self._require(kind, record_id)
        del self._records[kind][record_id]
        logger.info("record_store.record_deleted", backend=self.backend_name, kind=kind.value, record_id=record_id)

    def _require(self, kind: EntityKind, record_id: int) -> BaseModel:
        try:
            return self._records[kind][record_id]
        except KeyError:
            raise RecordNotFoundError(kind.value, record_id) from None
