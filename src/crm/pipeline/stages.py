"""Stage taxonomy -- the fixed, ordered list of sales pipeline stages.

The order of STAGES is the presentation order of the board columns and the
left-to-right funnel sequence. The taxonomy is a process-wide constant: it is
defined once at import time and never mutated.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class DealStage(str, Enum):
    """Sales pipeline stage key for a deal."""

    LEAD = "lead"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    CLOSED_WON = "closed-won"
    CLOSED_LOST = "closed-lost"


class Stage(BaseModel):
    """Display metadata for one pipeline stage.

    color is the column's styling key (a palette name, not a CSS value).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    position: int
    color: str


# ── Taxonomy ────────────────────────────────────────────────────────────────

STAGES: tuple[Stage, ...] = (
    Stage(id=DealStage.LEAD.value, name="Lead", position=0, color="gray"),
    Stage(id=DealStage.QUALIFIED.value, name="Qualified", position=1, color="blue"),
    Stage(id=DealStage.PROPOSAL.value, name="Proposal", position=2, color="yellow"),
    Stage(id=DealStage.NEGOTIATION.value, name="Negotiation", position=3, color="orange"),
    Stage(id=DealStage.CLOSED_WON.value, name="Closed Won", position=4, color="green"),
    Stage(id=DealStage.CLOSED_LOST.value, name="Closed Lost", position=5, color="red"),
)

# Terminal stages: deals here are no longer "active" pipeline.
CLOSED_STAGES: frozenset[str] = frozenset(
    {DealStage.CLOSED_WON.value, DealStage.CLOSED_LOST.value}
)

_STAGES_BY_ID: dict[str, Stage] = {stage.id: stage for stage in STAGES}


def stage_ids() -> list[str]:
    """Return the stage keys in taxonomy order."""
    return [stage.id for stage in STAGES]


def get_stage(stage_id: object) -> Stage | None:
    """Look up a stage by key. Returns None for anything not in the taxonomy."""
    if isinstance(stage_id, DealStage):
        stage_id = stage_id.value
    if not isinstance(stage_id, str):
        return None
    return _STAGES_BY_ID.get(stage_id)


def is_valid_stage(stage_id: object) -> bool:
    """True if stage_id names a member of the taxonomy."""
    return get_stage(stage_id) is not None
