"""Pipeline board -- the stage-column view of deals with drag-and-drop moves.

PipelineBoard owns the board's local deal and contact collections and renders
them into a BoardView (one column per stage, aggregate headers, deal cards).
Every mutation follows confirm-then-apply: local state only changes after the
record store returns the confirmed record, so a rejected write leaves the
board exactly as it was.

Notices are plain data handed to the optional notify callback (and kept on
board.notices) for whatever UI shows them.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

import structlog
from pydantic import BaseModel

from src.crm.pipeline.grouping import group_by_stage, stage_totals
from src.crm.pipeline.search import filter_deals
from src.crm.pipeline.stages import STAGES, DealStage, Stage
from src.crm.pipeline.transitions import (
    DragPayload,
    DragState,
    DragTransitionController,
    TransitionGate,
    TransitionOutcome,
    TransitionResult,
)
from src.crm.records.errors import RecordNotFoundError, RecordStoreError
from src.crm.records.schemas import ContactRead, DealRead
from src.crm.records.store import Payload, RecordStore

logger = structlog.get_logger(__name__)

EMPTY_COLUMN_MESSAGE = "No deals in this stage"

MSG_STAGE_UPDATE_FAILED = "Failed to update deal stage. Please try again."
MSG_DEAL_UPDATED = "Deal updated successfully!"
MSG_DEAL_CREATED = "Deal created successfully!"
MSG_DEAL_DELETED = "Deal deleted successfully!"
MSG_DELETE_FAILED = "Failed to delete deal. Please try again."


# ── View Models ─────────────────────────────────────────────────────────────


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class Notice(BaseModel):
    """Transient, non-blocking message for the user."""

    level: NoticeLevel
    message: str


class BadgeVariant(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    INFO = "info"
    DEFAULT = "default"


def probability_badge(probability: int | None) -> BadgeVariant:
    """Badge colour for a win probability percentage."""
    probability = probability or 0
    if probability >= 75:
        return BadgeVariant.SUCCESS
    if probability >= 50:
        return BadgeVariant.WARNING
    if probability >= 25:
        return BadgeVariant.INFO
    return BadgeVariant.DEFAULT


class DealCard(BaseModel):
    deal: DealRead
    contact_name: str | None = None
    badge: BadgeVariant = BadgeVariant.DEFAULT
    expected_close_label: str | None = None


class BoardColumn(BaseModel):
    stage: Stage
    count: int
    total_value: float
    cards: list[DealCard]
    empty_message: str | None = None


class BoardView(BaseModel):
    columns: list[BoardColumn]
    total_count: int
    total_value: float
    drag_state: DragState = DragState.IDLE
    dragging_deal_id: int | None = None


# ── Board ───────────────────────────────────────────────────────────────────


class PipelineBoard:
    """Board model over a record store.

    Args:
        store: Record store used for loading and for every write.
        gate: Shared TransitionGate so moves of the same deal serialise
            across boards. A private gate is used if omitted.
        on_deal_edited: Called with the confirmed record after a move or edit.
        on_deal_deleted: Called with the deal id after a confirmed delete.
        notify: Called with each Notice as it is raised.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        gate: TransitionGate | None = None,
        on_deal_edited: Callable[[DealRead], Any] | None = None,
        on_deal_deleted: Callable[[int], Any] | None = None,
        notify: Callable[[Notice], Any] | None = None,
    ) -> None:
        self._store = store
        self._controller = DragTransitionController(store, gate)
        self._on_deal_edited = on_deal_edited
        self._on_deal_deleted = on_deal_deleted
        self._notify = notify
        self._deals: list[DealRead] = []
        self._contacts: dict[int, ContactRead] = {}
        self.notices: list[Notice] = []

    # ── Collections ─────────────────────────────────────────────────────────

    @property
    def deals(self) -> list[DealRead]:
        return list(self._deals)

    @property
    def contacts(self) -> list[ContactRead]:
        return list(self._contacts.values())

    @property
    def drag_state(self) -> DragState:
        return self._controller.state

    async def load(self) -> None:
        """Fetch deals and contacts from the store. Store errors propagate."""
        deals = await self._store.list_deals()
        contacts = await self._store.list_contacts()
        self.set_deals(deals)
        self.set_contacts(contacts)
        logger.info("pipeline.board_loaded", deals=len(deals), contacts=len(contacts))

    def set_deals(self, deals: Iterable[DealRead]) -> None:
        self._deals = list(deals)

    def set_contacts(self, contacts: Iterable[ContactRead]) -> None:
        self._contacts = {c.id: c for c in contacts}

    def upsert_deal(self, deal: DealRead) -> None:
        """Replace the local deal with the same id, or add it at the front."""
        for index, existing in enumerate(self._deals):
            if existing.id == deal.id:
                self._deals[index] = deal
                return
        self._deals.insert(0, deal)

    def remove_deal(self, deal_id: int) -> bool:
        before = len(self._deals)
        self._deals = [d for d in self._deals if d.id != deal_id]
        return len(self._deals) != before

    def get_deal(self, deal_id: int) -> DealRead:
        for deal in self._deals:
            if deal.id == deal_id:
                return deal
        raise RecordNotFoundError("deal", deal_id)

    def contact_name(self, contact_id: int | None) -> str | None:
        """Weak lookup: a missing contact just means no contact line."""
        if contact_id is None:
            return None
        contact = self._contacts.get(contact_id)
        return contact.full_name if contact is not None else None

    # ── Rendering ───────────────────────────────────────────────────────────

    def render(self, search: str | None = None) -> BoardView:
        """Group the (optionally filtered) deals into stage columns."""
        deals = filter_deals(self._deals, self._contacts.values(), search)
        groups = group_by_stage(deals, STAGES)

        dangling = sorted(
            {d.contact_id for d in deals if d.contact_id is not None and d.contact_id not in self._contacts}
        )
        if dangling:
            logger.warning("pipeline.dangling_contact", contact_ids=dangling)

        columns = [
            BoardColumn(
                stage=group.stage,
                count=group.count,
                total_value=group.total_value,
                cards=[self._card(deal) for deal in group.deals],
                empty_message=EMPTY_COLUMN_MESSAGE if group.count == 0 else None,
            )
            for group in groups
        ]
        totals = stage_totals(groups)
        payload = self._controller.payload
        return BoardView(
            columns=columns,
            total_count=totals.count,
            total_value=totals.total_value,
            drag_state=self._controller.state,
            dragging_deal_id=payload.deal_id if payload is not None else None,
        )

    def _card(self, deal: DealRead) -> DealCard:
        close = deal.expected_close_date
        return DealCard(
            deal=deal,
            contact_name=self.contact_name(deal.contact_id),
            badge=probability_badge(deal.probability),
            expected_close_label=close.strftime("%b %d") if close else None,
        )

    # ── Drag and drop ───────────────────────────────────────────────────────

    def drag_start(self, deal_id: int) -> DragPayload:
        """Card handler: begin dragging the local deal with this id."""
        return self._controller.begin_drag(self.get_deal(deal_id))

    def cancel_drag(self) -> None:
        self._controller.cancel()

    async def drop(self, stage_id: str | DealStage) -> TransitionResult:
        """Column handler: drop the dragged deal on stage_id.

        A store rejection is reported as an error notice and a REJECTED
        result; it is not re-raised and the local deals stay unchanged.
        """
        payload = self._controller.payload
        try:
            result = await self._controller.drop(stage_id)
        except RecordStoreError:
            self._emit(NoticeLevel.ERROR, MSG_STAGE_UPDATE_FAILED)
            return TransitionResult(
                outcome=TransitionOutcome.REJECTED,
                deal_id=payload.deal_id,
                from_stage=payload.from_stage,
                to_stage=stage_id.value if isinstance(stage_id, DealStage) else stage_id,
            )

        if result.outcome is TransitionOutcome.APPLIED and result.deal is not None:
            self.upsert_deal(result.deal)
            self._deal_edited(result.deal)
        return result

    async def move_deal(self, deal_id: int, stage_id: str | DealStage) -> TransitionResult:
        """Full drag gesture (start + drop) for callers without a pointer."""
        self.drag_start(deal_id)
        return await self.drop(stage_id)

    # ── Edit / create / delete ──────────────────────────────────────────────

    async def edit_deal(self, deal_id: int, fields: Payload) -> DealRead:
        """Edit-form submission. Store errors propagate to the form."""
        updated = await self._store.update_deal(deal_id, fields)
        self.upsert_deal(updated)
        self._deal_edited(updated)
        self._emit(NoticeLevel.SUCCESS, MSG_DEAL_UPDATED)
        return updated

    async def create_deal(self, data: Payload) -> DealRead:
        """Create-form submission. The new deal goes to the front of the board."""
        created = await self._store.create_deal(data)
        self._deals.insert(0, created)
        self._emit(NoticeLevel.SUCCESS, MSG_DEAL_CREATED)
        return created

    async def delete_deal(self, deal_id: int, confirmed: bool) -> bool:
        """Delete a deal the user has confirmed. Returns True if deleted."""
        if not confirmed:
            return False
        try:
            await self._store.delete_deal(deal_id)
        except RecordStoreError as exc:
            logger.warning("pipeline.deal_delete_failed", deal_id=deal_id, error=str(exc))
            self._emit(NoticeLevel.ERROR, MSG_DELETE_FAILED)
            return False

        self.remove_deal(deal_id)
        if self._on_deal_deleted is not None:
            self._on_deal_deleted(deal_id)
        self._emit(NoticeLevel.SUCCESS, MSG_DEAL_DELETED)
        return True

    # ── Helpers ─────────────────────────────────────────────────────────────

    def _deal_edited(self, deal: DealRead) -> None:
        if self._on_deal_edited is not None:
            self._on_deal_edited(deal)

    def _emit(self, level: NoticeLevel, message: str) -> None:
        notice = Notice(level=level, message=message)
        self.notices.append(notice)
        if self._notify is not None:
            self._notify(notice)
