"""REST API endpoints for follow-up tasks."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from src.crm.api.deps import get_record_store, store_http_error
from src.crm.records.errors import RecordStoreError
from src.crm.records.schemas import EntityKind, TaskCreate, TaskRead, TaskUpdate
from src.crm.records.store import RecordStore

router = APIRouter(prefix="/api/v1/tasks", tags=["tasks"])


@router.get("", response_model=list[TaskRead])
async def list_tasks(store: RecordStore = Depends(get_record_store)) -> list[TaskRead]:
    """List all tasks, newest first. The dashboard orders open ones by due date."""
    try:
        return await store.list_records(EntityKind.TASK)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(task_id: int, store: RecordStore = Depends(get_record_store)) -> TaskRead:
    try:
        return await store.get_record(EntityKind.TASK, task_id)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.post("", response_model=TaskRead, status_code=201)
async def create_task(body: TaskCreate, store: RecordStore = Depends(get_record_store)) -> TaskRead:
    try:
        return await store.create(EntityKind.TASK, body)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: int, body: TaskUpdate, store: RecordStore = Depends(get_record_store)
) -> TaskRead:
    try:
        return await store.update(EntityKind.TASK, task_id, body)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: int, store: RecordStore = Depends(get_record_store)) -> Response:
    try:
        await store.delete_record(EntityKind.TASK, task_id)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
