"""Deal grouping engine -- partitions deals into per-stage groups with aggregates.

group_by_stage() is recomputed on every board render. It is a pure function
of its inputs: one group per stage in taxonomy order, deals kept in input
order within each group, count and total value per group.

Deals whose stage is not in the taxonomy are a data-integrity problem, not
a crash: they are left out of every group and reported as a warning.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import structlog
from pydantic import BaseModel, Field

from src.crm.pipeline.stages import STAGES, Stage
from src.crm.records.schemas import DealRead

logger = structlog.get_logger(__name__)


class StageGroup(BaseModel):
    """Derived view of one stage's deals. Never persisted."""

    stage: Stage
    deals: list[DealRead] = Field(default_factory=list)
    count: int = 0
    total_value: float = 0.0


class PipelineTotals(BaseModel):
    count: int = 0
    total_value: float = 0.0


def _value_of(deal: DealRead) -> float:
    """Deal value for aggregation; missing or unusable values count as 0."""
    try:
        return float(deal.value or 0)
    except (TypeError, ValueError):
        return 0.0


def group_by_stage(
    deals: Iterable[DealRead], stages: Sequence[Stage] = STAGES
) -> list[StageGroup]:
    """Partition deals by stage.

    Args:
        deals: Deals in display order (typically newest first).
        stages: Ordered stage taxonomy. Defaults to STAGES.

    Returns:
        One StageGroup per stage, in stage order. Empty stages yield
        count=0, total_value=0 and no deals.
    """
    buckets: dict[str, list[DealRead]] = {stage.id: [] for stage in stages}
    orphans: list[int] = []

    for deal in deals:
        bucket = buckets.get(deal.stage) if isinstance(deal.stage, str) else None
        if bucket is None:
            orphans.append(deal.id)
            continue
        bucket.append(deal)

    if orphans:
        logger.warning(
            "pipeline.unknown_stage",
            deal_ids=orphans,
            count=len(orphans),
        )

    return [
        StageGroup(
            stage=stage,
            deals=buckets[stage.id],
            count=len(buckets[stage.id]),
            total_value=sum(_value_of(d) for d in buckets[stage.id]),
        )
        for stage in stages
    ]


def stage_totals(groups: Iterable[StageGroup]) -> PipelineTotals:
    """Overall deal count and value across groups."""
    totals = PipelineTotals()
    for group in groups:
        totals.count += group.count
        totals.total_value += group.total_value
    return totals
