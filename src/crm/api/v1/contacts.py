"""REST API endpoints for contacts."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from src.crm.api.deps import get_record_store, store_http_error
from src.crm.records.errors import RecordStoreError
from src.crm.records.schemas import ContactCreate, ContactRead, ContactUpdate
from src.crm.records.store import RecordStore

router = APIRouter(prefix="/api/v1/contacts", tags=["contacts"])


@router.get("", response_model=list[ContactRead])
async def list_contacts(store: RecordStore = Depends(get_record_store)) -> list[ContactRead]:
    """List all contacts, newest first."""
    try:
        return await store.list_contacts()
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.get("/{contact_id}", response_model=ContactRead)
async def get_contact(
    contact_id: int, store: RecordStore = Depends(get_record_store)
) -> ContactRead:
    try:
        return await store.get_contact(contact_id)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.post("", response_model=ContactRead, status_code=201)
async def create_contact(
    body: ContactCreate, store: RecordStore = Depends(get_record_store)
) -> ContactRead:
    try:
        return await store.create_contact(body)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.patch("/{contact_id}", response_model=ContactRead)
async def update_contact(
    contact_id: int, body: ContactUpdate, store: RecordStore = Depends(get_record_store)
) -> ContactRead:
    """Update only the supplied contact fields."""
    try:
        return await store.update_contact(contact_id, body)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(
    contact_id: int, store: RecordStore = Depends(get_record_store)
) -> Response:
    """Delete a contact. Deals, tasks and quotes referencing it are left as-is."""
    try:
        await store.delete_contact(contact_id)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
