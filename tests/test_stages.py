"""Unit tests for the stage taxonomy."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.crm.pipeline.stages import (
    CLOSED_STAGES,
    STAGES,
    DealStage,
    get_stage,
    is_valid_stage,
    stage_ids,
)


def test_taxonomy_order():
    assert stage_ids() == [
        "lead",
        "qualified",
        "proposal",
        "negotiation",
        "closed-won",
        "closed-lost",
    ]
    assert [s.position for s in STAGES] == list(range(6))


def test_stage_keys_match_enum():
    assert stage_ids() == [s.value for s in DealStage]


def test_display_names():
    assert [s.name for s in STAGES] == [
        "Lead",
        "Qualified",
        "Proposal",
        "Negotiation",
        "Closed Won",
        "Closed Lost",
    ]


def test_get_stage_accepts_enum_and_string():
    assert get_stage("proposal") is STAGES[2]
    assert get_stage(DealStage.PROPOSAL) is STAGES[2]


@pytest.mark.parametrize("value", ["archived", "", "Lead", None, 3])
def test_unknown_stages_are_invalid(value):
    assert get_stage(value) is None
    assert is_valid_stage(value) is False


def test_closed_stages():
    assert CLOSED_STAGES == {"closed-won", "closed-lost"}


def test_stages_are_immutable():
    with pytest.raises(ValidationError):
        STAGES[0].name = "Prospect"


def test_column_colors():
    assert [s.color for s in STAGES] == ["gray", "blue", "yellow", "orange", "green", "red"]
