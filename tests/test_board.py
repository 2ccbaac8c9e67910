"""Tests for PipelineBoard -- rendering, drag-and-drop and deal edits.

All tests run against InMemoryRecordStore. Store failures are simulated by
patching single store methods with AsyncMock side effects.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from structlog.testing import capture_logs

from src.crm.pipeline.board import (
    EMPTY_COLUMN_MESSAGE,
    MSG_DEAL_CREATED,
    MSG_DEAL_DELETED,
    MSG_DEAL_UPDATED,
    MSG_DELETE_FAILED,
    MSG_STAGE_UPDATE_FAILED,
    BadgeVariant,
    NoticeLevel,
    PipelineBoard,
    probability_badge,
)
from src.crm.pipeline.transitions import DragState, TransitionOutcome
from src.crm.records.errors import (
    RecordNotFoundError,
    RecordStoreUnavailableError,
    RecordValidationError,
)
from src.crm.records.memory import InMemoryRecordStore
from src.crm.records.schemas import EntityKind


def _seeded_store() -> InMemoryRecordStore:
    return InMemoryRecordStore(
        seed={
            EntityKind.CONTACT: [
                {"id": 1, "first_name": "Sarah", "last_name": "Johnson", "company": "TechCorp"},
            ],
            EntityKind.DEAL: [
                {"id": 1, "title": "A", "value": 100, "stage": "lead", "probability": 10, "contact_id": 1},
                {"id": 2, "title": "B", "value": 50, "stage": "lead", "probability": 20},
                {"id": 3, "title": "C", "value": 200, "stage": "proposal", "probability": 60,
                 "expected_close_date": "2025-03-07"},
            ],
        }
    )


def _column(view, stage_id):
    return next(c for c in view.columns if c.stage.id == stage_id)


# ── Badges ──────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "probability,expected",
    [
        (100, BadgeVariant.SUCCESS),
        (75, BadgeVariant.SUCCESS),
        (74, BadgeVariant.WARNING),
        (50, BadgeVariant.WARNING),
        (49, BadgeVariant.INFO),
        (25, BadgeVariant.INFO),
        (24, BadgeVariant.DEFAULT),
        (0, BadgeVariant.DEFAULT),
        (None, BadgeVariant.DEFAULT),
    ],
)
def test_probability_badge(probability, expected):
    assert probability_badge(probability) is expected


# ── Rendering ───────────────────────────────────────────────────────────────


class TestRender:
    @pytest.mark.asyncio
    async def test_columns_follow_taxonomy_with_aggregates(self):
        board = PipelineBoard(_seeded_store())
        await board.load()

        view = board.render()

        assert [c.stage.id for c in view.columns] == [
            "lead", "qualified", "proposal", "negotiation", "closed-won", "closed-lost",
        ]
        lead = _column(view, "lead")
        assert lead.count == 2
        assert lead.total_value == 150
        # Newest first from the store
        assert [card.deal.id for card in lead.cards] == [2, 1]
        assert view.total_count == 3
        assert view.total_value == 350
        assert view.drag_state is DragState.IDLE
        assert view.dragging_deal_id is None

    @pytest.mark.asyncio
    async def test_empty_columns_carry_message(self):
        board = PipelineBoard(_seeded_store())
        await board.load()

        view = board.render()

        assert _column(view, "qualified").empty_message == EMPTY_COLUMN_MESSAGE
        assert _column(view, "qualified").cards == []
        assert _column(view, "lead").empty_message is None

    @pytest.mark.asyncio
    async def test_card_fields(self):
        board = PipelineBoard(_seeded_store())
        await board.load()

        view = board.render()

        card_a = next(c for c in _column(view, "lead").cards if c.deal.id == 1)
        assert card_a.contact_name == "Sarah Johnson"
        assert card_a.badge is BadgeVariant.DEFAULT
        assert card_a.expected_close_label is None

        card_c = _column(view, "proposal").cards[0]
        assert card_c.badge is BadgeVariant.WARNING
        assert card_c.expected_close_label == "Mar 07"

    @pytest.mark.asyncio
    async def test_dangling_contact_renders_without_name(self):
        store = InMemoryRecordStore(
            seed={EntityKind.DEAL: [{"id": 1, "title": "A", "value": 1, "stage": "lead", "contact_id": 99}]}
        )
        board = PipelineBoard(store)
        await board.load()

        with capture_logs() as logs:
            view = board.render()

        assert _column(view, "lead").cards[0].contact_name is None
        warnings = [e for e in logs if e["event"] == "pipeline.dangling_contact"]
        assert warnings[0]["contact_ids"] == [99]

    @pytest.mark.asyncio
    async def test_search_filters_columns_and_totals(self):
        board = PipelineBoard(_seeded_store())
        await board.load()

        view = board.render(search="techcorp")

        assert view.total_count == 1
        assert [card.deal.id for card in _column(view, "lead").cards] == [1]
        assert _column(view, "proposal").count == 0

    @pytest.mark.asyncio
    async def test_render_reports_drag_in_progress(self):
        board = PipelineBoard(_seeded_store())
        await board.load()

        board.drag_start(3)
        view = board.render()

        assert view.drag_state is DragState.DRAGGING
        assert view.dragging_deal_id == 3


# ── Drag and drop ───────────────────────────────────────────────────────────


class TestDragAndDrop:
    @pytest.mark.asyncio
    async def test_drop_applies_confirmed_record(self):
        edited = []
        board = PipelineBoard(_seeded_store(), on_deal_edited=edited.append)
        await board.load()

        board.drag_start(1)
        result = await board.drop("qualified")

        assert result.outcome is TransitionOutcome.APPLIED
        assert board.get_deal(1).stage == "qualified"
        assert [d.id for d in edited] == [1]
        view = board.render()
        assert _column(view, "lead").count == 1
        assert _column(view, "qualified").count == 1
        assert view.drag_state is DragState.IDLE

    @pytest.mark.asyncio
    async def test_drop_keeps_deal_position(self):
        board = PipelineBoard(_seeded_store())
        await board.load()

        await board.move_deal(2, "negotiation")

        assert [d.id for d in board.deals] == [3, 2, 1]

    @pytest.mark.asyncio
    async def test_rejected_drop_leaves_board_unchanged(self):
        store = _seeded_store()
        notices = []
        edited = []
        board = PipelineBoard(store, notify=notices.append, on_deal_edited=edited.append)
        await board.load()
        before = board.render()
        store.update_deal = AsyncMock(side_effect=RecordStoreUnavailableError("down"))

        board.drag_start(1)
        result = await board.drop("qualified")

        assert result.outcome is TransitionOutcome.REJECTED
        assert result.to_stage == "qualified"
        assert board.get_deal(1).stage == "lead"
        assert board.render() == before
        assert edited == []
        assert [(n.level, n.message) for n in notices] == [(NoticeLevel.ERROR, MSG_STAGE_UPDATE_FAILED)]
        assert board.drag_state is DragState.IDLE

    @pytest.mark.asyncio
    async def test_drop_on_same_stage_does_not_call_store(self):
        store = _seeded_store()
        board = PipelineBoard(store)
        await board.load()
        store.update_deal = AsyncMock()

        result = await board.move_deal(3, "proposal")

        assert result.outcome is TransitionOutcome.NOOP
        store.update_deal.assert_not_called()
        assert board.notices == []

    @pytest.mark.asyncio
    async def test_cancel_drag(self):
        board = PipelineBoard(_seeded_store())
        await board.load()

        board.drag_start(1)
        board.cancel_drag()

        assert board.drag_state is DragState.IDLE
        assert board.get_deal(1).stage == "lead"

    @pytest.mark.asyncio
    async def test_drag_start_unknown_deal_raises(self):
        board = PipelineBoard(_seeded_store())
        await board.load()

        with pytest.raises(RecordNotFoundError):
            board.drag_start(404)


# ── Edit / create / delete ──────────────────────────────────────────────────


class TestDealForms:
    @pytest.mark.asyncio
    async def test_edit_deal_replaces_local_record(self):
        edited = []
        board = PipelineBoard(_seeded_store(), on_deal_edited=edited.append)
        await board.load()

        updated = await board.edit_deal(2, {"title": "B2", "probability": 80})

        assert board.get_deal(2).title == "B2"
        assert board.get_deal(2).stage == "lead"
        assert edited == [updated]
        assert board.notices[-1].message == MSG_DEAL_UPDATED

    @pytest.mark.asyncio
    async def test_edit_deal_validation_error_propagates(self):
        board = PipelineBoard(_seeded_store())
        await board.load()

        with pytest.raises(RecordValidationError):
            await board.edit_deal(2, {"probability": 150})

        assert board.get_deal(2).probability == 20
        assert board.notices == []

    @pytest.mark.asyncio
    async def test_create_deal_goes_to_front(self):
        board = PipelineBoard(_seeded_store())
        await board.load()

        created = await board.create_deal({"title": "New", "value": 10, "stage": "qualified"})

        assert board.deals[0] == created
        assert created.id == 4
        assert board.notices[-1].level is NoticeLevel.SUCCESS
        assert board.notices[-1].message == MSG_DEAL_CREATED

    @pytest.mark.asyncio
    async def test_delete_requires_confirmation(self):
        store = _seeded_store()
        board = PipelineBoard(store)
        await board.load()

        assert await board.delete_deal(1, confirmed=False) is False

        assert len(board.deals) == 3
        assert (await store.get_deal(1)).id == 1

    @pytest.mark.asyncio
    async def test_confirmed_delete_removes_deal(self):
        deleted = []
        board = PipelineBoard(_seeded_store(), on_deal_deleted=deleted.append)
        await board.load()

        assert await board.delete_deal(1, confirmed=True) is True

        assert [d.id for d in board.deals] == [3, 2]
        assert deleted == [1]
        assert board.notices[-1].message == MSG_DEAL_DELETED

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_deal(self):
        board = PipelineBoard(_seeded_store())
        await board.load()

        assert await board.delete_deal(404, confirmed=True) is False

        assert len(board.deals) == 3
        assert board.notices[-1].level is NoticeLevel.ERROR
        assert board.notices[-1].message == MSG_DELETE_FAILED


# ── End to end ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_drag_lead_deal_to_qualified_updates_aggregates():
    """Two lead deals (100, 50); dragging the 100 one to Qualified splits them."""
    store = InMemoryRecordStore(
        seed={
            EntityKind.DEAL: [
                {"id": 1, "title": "A", "value": 100, "stage": "lead"},
                {"id": 2, "title": "B", "value": 50, "stage": "lead"},
            ]
        }
    )
    board = PipelineBoard(store)
    await board.load()

    view = board.render()
    assert (_column(view, "lead").count, _column(view, "lead").total_value) == (2, 150)

    board.drag_start(1)
    await board.drop("qualified")

    view = board.render()
    assert (_column(view, "lead").count, _column(view, "lead").total_value) == (1, 50)
    assert (_column(view, "qualified").count, _column(view, "qualified").total_value) == (1, 100)
    assert (await store.get_deal(1)).stage == "qualified"
    assert view.total_count == 2
    assert view.total_value == 150
