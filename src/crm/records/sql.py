"""SQL record store -- async CRUD over the CRM tables via SQLAlchemy.

Uses the session_factory callable pattern: the store is handed an async
generator function (core.database.get_session in production, a test-bound
factory in tests) and opens one session per operation.

Driver failures are wrapped in RecordStoreUnavailableError so callers only
ever see the record store exception taxonomy.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone

import structlog
from pydantic import BaseModel
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.crm.core.monitoring import track_store_call
from src.crm.records.errors import RecordNotFoundError, RecordStoreUnavailableError
from src.crm.records.models import MODELS
from src.crm.records.schemas import ENTITY_SCHEMAS, EntityKind, PartialUpdate
from src.crm.records.store import RecordStore, creation_stamps, update_stamps

logger = structlog.get_logger(__name__)


class SqlRecordStore(RecordStore):
    """RecordStore backed by a SQL database.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    backend_name = "sql"

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    async def list_records(self, kind: EntityKind) -> list[BaseModel]:
        model_cls = MODELS[kind]
        read_model = ENTITY_SCHEMAS[kind].read
        async with track_store_call(self.backend_name, "list_records"):
            try:
                async for session in self._session_factory():
                    stmt = select(model_cls).order_by(model_cls.id.desc())
                    result = await session.execute(stmt)
                    return [read_model.model_validate(m) for m in result.scalars().all()]
            except SQLAlchemyError as exc:
                raise self._unavailable("list_records", kind, exc) from exc
        return []

    async def get_record(self, kind: EntityKind, record_id: int) -> BaseModel:
        read_model = ENTITY_SCHEMAS[kind].read
        async with track_store_call(self.backend_name, "get_record"):
            try:
                async for session in self._session_factory():
                    model = await session.get(MODELS[kind], record_id)
                    if model is None:
                        raise RecordNotFoundError(kind.value, record_id)
                    return read_model.model_validate(model)
            except SQLAlchemyError as exc:
                raise self._unavailable("get_record", kind, exc) from exc
        raise RecordNotFoundError(kind.value, record_id)

    async def create_record(self, kind: EntityKind, data: BaseModel) -> BaseModel:
        values = data.model_dump()
        values.update(creation_stamps(kind, datetime.now(timezone.utc)))
        read_model = ENTITY_SCHEMAS[kind].read
        async with track_store_call(self.backend_name, "create_record"):
            try:
                async for session in self._session_factory():
                    model = MODELS[kind](**values)
                    session.add(model)
                    await session.commit()
                    await session.refresh(model)
                    logger.info(
                        "record_store.record_created",
                        backend=self.backend_name,
                        kind=kind.value,
                        record_id=model.id,
                    )
                    return read_model.model_validate(model)
            except SQLAlchemyError as exc:
                raise self._unavailable("create_record", kind, exc) from exc
        raise RecordStoreUnavailableError("No database session available")

    async def update_record(
        self, kind: EntityKind, record_id: int, data: PartialUpdate
    ) -> BaseModel:
        changes = data.changes()
        read_model = ENTITY_SCHEMAS[kind].read
        async with track_store_call(self.backend_name, "update_record"):
            try:
                async for session in self._session_factory():
                    model = await session.get(MODELS[kind], record_id)
                    if model is None:
                        raise RecordNotFoundError(kind.value, record_id)

                    # Only supplied fields change; everything else is kept as stored
                    for field, value in changes.items():
                        setattr(model, field, value)
                    for field, value in update_stamps(kind, datetime.now(timezone.utc)).items():
                        setattr(model, field, value)

                    await session.commit()
                    await session.refresh(model)
                    logger.info(
                        "record_store.record_updated",
                        backend=self.backend_name,
                        kind=kind.value,
                        record_id=record_id,
                        fields=sorted(changes),
                    )
                    return read_model.model_validate(model)
            except SQLAlchemyError as exc:
                raise self._unavailable("update_record", kind, exc) from exc
        raise RecordNotFoundError(kind.value, record_id)

    async def delete_record(self, kind: EntityKind, record_id: int) -> None:
        async with track_store_call(self.backend_name, "delete_record"):
            try:
                async for session in self._session_factory():
                    model = await session.get(MODELS[kind], record_id)
                    if model is None:
                        raise RecordNotFoundError(kind.value, record_id)
                    await session.delete(model)
                    await session.commit()
                    logger.info(
                        "record_store.record_deleted",
                        backend=self.backend_name,
                        kind=kind.value,
                        record_id=record_id,
                    )
            except SQLAlchemyError as exc:
                raise self._unavailable("delete_record", kind, exc) from exc

    async def ping(self) -> bool:
        try:
            async for session in self._session_factory():
                await session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.warning("record_store.ping_failed", backend=self.backend_name)
            return False

    def _unavailable(
        self, operation: str, kind: EntityKind, exc: SQLAlchemyError
    ) -> RecordStoreUnavailableError:
        logger.error(
            "record_store.database_error",
            backend=self.backend_name,
            operation=operation,
            kind=kind.value,
            error=str(exc),
        )
        return RecordStoreUnavailableError(f"{operation} failed for {kind.value}: {exc}")
