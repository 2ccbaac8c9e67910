"""REST API endpoints for deals.

CRUD over deal records plus the search filter used by the deals list
(title, contact name or contact company).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from src.crm.api.deps import get_record_store, store_http_error
from src.crm.pipeline.search import filter_deals
from src.crm.records.errors import RecordStoreError
from src.crm.records.schemas import DealCreate, DealRead, DealUpdate
from src.crm.records.store import RecordStore

router = APIRouter(prefix="/api/v1/deals", tags=["deals"])


@router.get("", response_model=list[DealRead])
async def list_deals(
    q: str | None = Query(default=None, description="Match title, contact name or company"),
    store: RecordStore = Depends(get_record_store),
) -> list[DealRead]:
    """List deals, newest first, optionally filtered by a search term."""
    try:
        deals = await store.list_deals()
        if not q:
            return deals
        return filter_deals(deals, await store.list_contacts(), q)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.get("/{deal_id}", response_model=DealRead)
async def get_deal(deal_id: int, store: RecordStore = Depends(get_record_store)) -> DealRead:
    try:
        return await store.get_deal(deal_id)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.post("", response_model=DealRead, status_code=201)
async def create_deal(body: DealCreate, store: RecordStore = Depends(get_record_store)) -> DealRead:
    """Create a deal. Stage defaults to lead and probability to 10."""
    try:
        return await store.create_deal(body)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.patch("/{deal_id}", response_model=DealRead)
async def update_deal(
    deal_id: int, body: DealUpdate, store: RecordStore = Depends(get_record_store)
) -> DealRead:
    """Merge the supplied fields into the deal and return the full record."""
    try:
        return await store.update_deal(deal_id, body)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.delete("/{deal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_deal(deal_id: int, store: RecordStore = Depends(get_record_store)) -> Response:
    try:
        await store.delete_deal(deal_id)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
