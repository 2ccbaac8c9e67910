"""REST API endpoints for the pipeline board.

GET /pipeline renders the stage-column board. POST /pipeline/deals/{id}/move
runs one drag gesture (fetch, drag-start, drop) through the transition
controller under the application-wide TransitionGate, so concurrent moves of
the same deal are applied one at a time against its latest stage.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from src.crm.api.deps import get_record_store, get_transition_gate, store_http_error
from src.crm.pipeline.board import BoardView, PipelineBoard
from src.crm.pipeline.stages import STAGES, Stage, is_valid_stage, stage_ids
from src.crm.pipeline.transitions import (
    DragTransitionController,
    TransitionGate,
    TransitionOutcome,
)
from src.crm.records.errors import RecordStoreError
from src.crm.records.schemas import DealRead
from src.crm.records.store import RecordStore

router = APIRouter(prefix="/api/v1/pipeline", tags=["pipeline"])


# ── Request / Response Schemas ──────────────────────────────────────────────


class MoveDealRequest(BaseModel):
    """Request body for moving a deal to another stage."""

    stage: str


class MoveDealResponse(BaseModel):
    outcome: TransitionOutcome
    deal: DealRead


# ── Endpoints ───────────────────────────────────────────────────────────────


@router.get("/stages", response_model=list[Stage])
async def list_stages() -> list[Stage]:
    """The stage taxonomy in board order."""
    return list(STAGES)


@router.get("", response_model=BoardView)
async def get_pipeline(
    q: str | None = Query(default=None, description="Match title, contact name or company"),
    store: RecordStore = Depends(get_record_store),
    gate: TransitionGate = Depends(get_transition_gate),
) -> BoardView:
    """Render the board: one column per stage with count and total value."""
    board = PipelineBoard(store, gate=gate)
    try:
        await board.load()
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc
    return board.render(search=q)


@router.post("/deals/{deal_id}/move", response_model=MoveDealResponse)
async def move_deal(
    deal_id: int,
    body: MoveDealRequest,
    store: RecordStore = Depends(get_record_store),
    gate: TransitionGate = Depends(get_transition_gate),
) -> MoveDealResponse:
    """Move a deal to another stage.

    Dropping on the deal's current stage is a no-op and does not write.
    An unknown stage is rejected with 422 before anything is fetched.
    """
    if not is_valid_stage(body.stage):
        raise HTTPException(
            status_code=422,
            detail=f"Unknown stage '{body.stage}'. Expected one of: {', '.join(stage_ids())}",
        )

    controller = DragTransitionController(store, gate)
    try:
        result = await controller.move(deal_id, body.stage)
    except RecordStoreError as exc:
        raise store_http_error(exc) from exc

    return MoveDealResponse(outcome=result.outcome, deal=result.deal)
