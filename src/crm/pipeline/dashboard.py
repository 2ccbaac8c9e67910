"""Dashboard metrics -- headline numbers across contacts, deals, tasks and activities."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timezone

from pydantic import BaseModel

from src.crm.pipeline.grouping import group_by_stage
from src.crm.pipeline.stages import CLOSED_STAGES, DealStage
from src.crm.records.schemas import ActivityRead, ContactRead, DealRead, TaskRead, TaskStatus

RECENT_ACTIVITY_LIMIT = 5
UPCOMING_TASK_LIMIT = 5


class StageSummary(BaseModel):
    stage_id: str
    name: str
    color: str
    count: int
    total_value: float


class DashboardMetrics(BaseModel):
    total_contacts: int
    total_deals: int
    active_deals: int
    total_value: float
    won_value: float
    total_tasks: int
    pending_tasks: int
    recent_activities: list[ActivityRead]
    upcoming_tasks: list[TaskRead]
    pipeline: list[StageSummary]


def _value(deal: DealRead) -> float:
    return float(deal.value or 0)


def _created(activity: ActivityRead) -> datetime:
    created = activity.created_at
    if created is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    # Stores may hand back naive timestamps (SQLite); treat them as UTC
    return created if created.tzinfo else created.replace(tzinfo=timezone.utc)


def build_dashboard(
    contacts: Iterable[ContactRead],
    deals: Iterable[DealRead],
    tasks: Iterable[TaskRead],
    activities: Iterable[ActivityRead],
) -> DashboardMetrics:
    """Compute the dashboard from full record collections.

    active_deals excludes closed-won and closed-lost. Upcoming tasks are the
    not-completed tasks with the earliest due dates (undated ones last).
    """
    contacts, deals, tasks, activities = list(contacts), list(deals), list(tasks), list(activities)

    recent = sorted(activities, key=_created, reverse=True)[:RECENT_ACTIVITY_LIMIT]
    open_tasks = [t for t in tasks if t.status != TaskStatus.COMPLETED.value]
    upcoming = sorted(open_tasks, key=lambda t: (t.due_date is None, t.due_date or date.max))

    return DashboardMetrics(
        total_contacts=len(contacts),
        total_deals=len(deals),
        active_deals=sum(1 for d in deals if d.stage not in CLOSED_STAGES),
        total_value=sum(_value(d) for d in deals),
        won_value=sum(_value(d) for d in deals if d.stage == DealStage.CLOSED_WON.value),
        total_tasks=len(tasks),
        pending_tasks=sum(1 for t in tasks if t.status == TaskStatus.PENDING.value),
        recent_activities=recent,
        upcoming_tasks=upcoming[:UPCOMING_TASK_LIMIT],
        pipeline=[
            StageSummary(
                stage_id=group.stage.id,
                name=group.stage.name,
                color=group.stage.color,
                count=group.count,
                total_value=group.total_value,
            )
            for group in group_by_stage(deals)
        ],
    )
