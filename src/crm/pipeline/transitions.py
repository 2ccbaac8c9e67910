"""Drag-transition controller -- the drag-and-drop stage change state machine.

States: IDLE -> DRAGGING (begin_drag) -> DROPPED (drop on a new stage) -> IDLE.

- begin_drag() snapshots the deal; later changes to the caller's deal object
  never leak into the in-flight gesture.
- drop() on an unknown stage cancels and on the deal's own stage is a no-op.
  Neither touches the record store.
- A real move sends exactly {"stage": new_stage} to RecordStore.update_deal.
  The controller returns to IDLE whether the store accepts or rejects it, and
  never mutates any local deal collection: applying the confirmed record is
  the caller's job.

TransitionGate serialises transitions per deal id across controllers, so two
overlapping moves of the same deal reach the store one after the other.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, nullcontext
from enum import Enum

import structlog
from pydantic import BaseModel, ConfigDict

from src.crm.core.monitoring import pipeline_stage_transitions_total
from src.crm.pipeline.stages import DealStage, is_valid_stage
from src.crm.records.errors import RecordStoreError
from src.crm.records.schemas import DealRead
from src.crm.records.store import RecordStore

logger = structlog.get_logger(__name__)


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    DROPPED = "dropped"


class TransitionOutcome(str, Enum):
    APPLIED = "applied"
    NOOP = "noop"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class DragStateError(RuntimeError):
    """Raised when a drag handler is called in the wrong state."""


class DragPayload(BaseModel):
    """Immutable snapshot of the deal being dragged."""

    model_config = ConfigDict(frozen=True)

    deal_id: int
    from_stage: str
    deal: DealRead


class TransitionResult(BaseModel):
    """Outcome of one drop. deal is the confirmed record for APPLIED, the
    dragged snapshot for NOOP and None for CANCELLED."""

    outcome: TransitionOutcome
    deal_id: int
    from_stage: str
    to_stage: str | None = None
    deal: DealRead | None = None


# ── Per-deal serialisation ──────────────────────────────────────────────────


class TransitionGate:
    """Holds one asyncio.Lock per deal id with a transition in flight.

    Locks are created on demand and dropped once nobody holds or waits on
    them, so the gate does not grow with the number of deals ever moved.
    """

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._holders: dict[int, int] = {}

    def is_busy(self, deal_id: int) -> bool:
        lock = self._locks.get(deal_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, deal_id: int) -> AsyncGenerator[None, None]:
        lock = self._locks.get(deal_id)
        if lock is None:
            lock = self._locks[deal_id] = asyncio.Lock()
        self._holders[deal_id] = self._holders.get(deal_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[deal_id] -= 1
            if self._holders[deal_id] == 0:
                del self._holders[deal_id]
                del self._locks[deal_id]


# ── Controller ──────────────────────────────────────────────────────────────


class DragTransitionController:
    """Drives one drag gesture at a time against a record store.

    Args:
        store: Record store that persists confirmed stage changes.
        gate: Shared per-deal gate. A private gate is created if omitted.
    """

    def __init__(self, store: RecordStore, gate: TransitionGate | None = None) -> None:
        self._store = store
        self._gate = gate or TransitionGate()
        self._state = DragState.IDLE
        self._payload: DragPayload | None = None

    @property
    def state(self) -> DragState:
        return self._state

    @property
    def payload(self) -> DragPayload | None:
        return self._payload

    def begin_drag(self, deal: DealRead) -> DragPayload:
        """IDLE -> DRAGGING. Captures a deep copy of deal, stage by value."""
        if self._state is not DragState.IDLE:
            raise DragStateError(f"Cannot start a drag while {self._state.value}")

        snapshot = deal.model_copy(deep=True)
        self._payload = DragPayload(deal_id=snapshot.id, from_stage=snapshot.stage, deal=snapshot)
        self._state = DragState.DRAGGING
        logger.debug("pipeline.drag_started", deal_id=snapshot.id, from_stage=snapshot.stage)
        return self._payload

    def cancel(self) -> None:
        """Abandon the drag (released outside any column). No side effects."""
        if self._state is DragState.DRAGGING:
            logger.debug("pipeline.drag_abandoned", deal_id=self._payload.deal_id)
            self._reset()

    async def drop(self, stage_id: str | DealStage) -> TransitionResult:
        """Drop the dragged deal on a stage column.

        Returns:
            TransitionResult with outcome CANCELLED (unknown stage), NOOP
            (same stage, deal is the snapshot) or APPLIED (store confirmed,
            deal is the updated record).

        Raises:
            DragStateError: No drag in progress.
            RecordStoreError: The store rejected the update. The controller is
                already back to IDLE when this propagates.
        """
        return await self._drop(stage_id, hold_gate=True)

    async def move(self, deal_id: int, stage_id: str | DealStage) -> TransitionResult:
        """Run a whole gesture (fetch, begin_drag, drop) for one deal.

        The deal's gate is held from the fetch to the store write, so the
        no-op guard always compares against the latest confirmed stage and
        overlapping moves of the same deal apply in arrival order.

        Raises:
            DragStateError: A drag is already in progress on this controller.
            RecordStoreError: The fetch or the update failed.
        """
        if self._state is not DragState.IDLE:
            raise DragStateError(f"Cannot start a drag while {self._state.value}")

        async with self._gate.hold(deal_id):
            deal = await self._store.get_deal(deal_id)
            self.begin_drag(deal)
            return await self._drop(stage_id, hold_gate=False)

    async def _drop(self, stage_id: str | DealStage, *, hold_gate: bool) -> TransitionResult:
        if self._state is not DragState.DRAGGING or self._payload is None:
            raise DragStateError(f"Cannot drop while {self._state.value}")

        payload = self._payload
        if isinstance(stage_id, DealStage):
            stage_id = stage_id.value

        if not is_valid_stage(stage_id):
            self._reset()
            return self._finish(payload, TransitionOutcome.CANCELLED, None)

        if stage_id == payload.from_stage:
            self._reset()
            return self._finish(payload, TransitionOutcome.NOOP, stage_id, payload.deal)

        self._state = DragState.DROPPED
        try:
            gate = self._gate.hold(payload.deal_id) if hold_gate else nullcontext()
            async with gate:
                updated = await self._store.update_deal(payload.deal_id, {"stage": stage_id})
        except RecordStoreError as exc:
            pipeline_stage_transitions_total.labels(outcome=TransitionOutcome.REJECTED.value).inc()
            logger.warning(
                "pipeline.transition_rejected",
                deal_id=payload.deal_id,
                from_stage=payload.from_stage,
                to_stage=stage_id,
                error=str(exc),
            )
            raise
        finally:
            self._reset()

        result = self._finish(payload, TransitionOutcome.APPLIED, stage_id, updated)
        logger.info(
            "pipeline.transition_applied",
            deal_id=payload.deal_id,
            from_stage=payload.from_stage,
            to_stage=stage_id,
        )
        return result

    def _finish(
        self,
        payload: DragPayload,
        outcome: TransitionOutcome,
        to_stage: str | None,
        deal: DealRead | None = None,
    ) -> TransitionResult:
        pipeline_stage_transitions_total.labels(outcome=outcome.value).inc()
        return TransitionResult(
            outcome=outcome,
            deal_id=payload.deal_id,
            from_stage=payload.from_stage,
            to_stage=to_stage,
            deal=deal,
        )

    def _reset(self) -> None:
        self._state = DragState.IDLE
        self._payload = None
