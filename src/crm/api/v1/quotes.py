"""REST API endpoints for quotes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from src.crm.api.deps import get_record_store, store_http_error
from src.crm.records.errors import RecordStoreError
from src.crm.records.schemas import EntityKind, QuoteCreate, QuoteRead, QuoteUpdate
from src.crm.records.store import RecordStore

router = APIRouter(prefix="/api/v1/quotes", tags=["quotes"])


@router.get("", response_model=list[QuoteRead])
async def list_quotes(store: RecordStore = Depends(get_record_store)) -> list[QuoteRead]:
    try:
        return await store.list_records(EntityKind.QUOTE)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.get("/{quote_id}", response_model=QuoteRead)
async def get_quote(quote_id: int, store: RecordStore = Depends(get_record_store)) -> QuoteRead:
    try:
        return await store.get_record(EntityKind.QUOTE, quote_id)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.post("", response_model=QuoteRead, status_code=201)
async def create_quote(body: QuoteCreate, store: RecordStore = Depends(get_record_store)) -> QuoteRead:
    """Create a quote. expires_on must fall after quote_date."""
    try:
        return await store.create(EntityKind.QUOTE, body)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.patch("/{quote_id}", response_model=QuoteRead)
async def update_quote(
    quote_id: int, body: QuoteUpdate, store: RecordStore = Depends(get_record_store)
) -> QuoteRead:
    try:
        return await store.update(EntityKind.QUOTE, quote_id, body)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quote(quote_id: int, store: RecordStore = Depends(get_record_store)) -> Response:
    try:
        await store.delete_record(EntityKind.QUOTE, quote_id)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
