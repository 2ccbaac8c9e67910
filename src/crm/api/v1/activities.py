"""REST API endpoints for logged activities (calls, emails, meetings, notes)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from src.crm.api.deps import get_record_store, store_http_error
from src.crm.records.errors import RecordStoreError
from src.crm.records.schemas import ActivityCreate, ActivityRead, ActivityUpdate, EntityKind
from src.crm.records.store import RecordStore

router = APIRouter(prefix="/api/v1/activities", tags=["activities"])


@router.get("", response_model=list[ActivityRead])
async def list_activities(store: RecordStore = Depends(get_record_store)) -> list[ActivityRead]:
    try:
        return await store.list_records(EntityKind.ACTIVITY)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.get("/{activity_id}", response_model=ActivityRead)
async def get_activity(activity_id: int, store: RecordStore = Depends(get_record_store)) -> ActivityRead:
    try:
        return await store.get_record(EntityKind.ACTIVITY, activity_id)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.post("", response_model=ActivityRead, status_code=201)
async def create_activity(body: ActivityCreate, store: RecordStore = Depends(get_record_store)) -> ActivityRead:
    try:
        return await store.create(EntityKind.ACTIVITY, body)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.patch("/{activity_id}", response_model=ActivityRead)
async def update_activity(
    activity_id: int, body: ActivityUpdate, store: RecordStore = Depends(get_record_store)
) -> ActivityRead:
    """Correct a logged activity. Only supplied fields change."""
    try:
        return await store.update(EntityKind.ACTIVITY, activity_id, body)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.delete("/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_activity(activity_id: int, store: RecordStore = Depends(get_record_store)) -> Response:
    try:
        await store.delete_record(EntityKind.ACTIVITY, activity_id)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
