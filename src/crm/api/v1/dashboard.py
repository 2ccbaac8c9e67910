"""Dashboard endpoint -- headline CRM metrics."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.crm.api.deps import get_record_store, store_http_error
from src.crm.pipeline.dashboard import DashboardMetrics, build_dashboard
from src.crm.records.errors import RecordStoreError
from src.crm.records.store import RecordStore

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardMetrics)
async def get_dashboard(store: RecordStore = Depends(get_record_store)) -> DashboardMetrics:
    try:
        contacts = await store.list_contacts()
        deals = await store.list_deals()
        tasks = await store.list_tasks()
        activities = await store.list_activities()
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc
    return build_dashboard(contacts, deals, tasks, activities)
