from __future__ import annotations

import discord
import pytest

from core.models import FieldSpec, FieldStyle
from views.ticket_forms import build_form, effective_max_length, extract_submission, parse_form


def _fields(count: int) -> tuple[FieldSpec, ...]:
    return tuple(FieldSpec(id=f"f{idx}", label=f"Field {idx}") for idx in range(count))


@pytest.mark.asyncio
async def test_form_keeps_at_most_five_inputs() -> None:
    modal = build_form(_fields(7), "Billing", "panel1_form_option_1")

    assert modal.custom_id == "panel1_form_option_1"
    assert modal.title == "Billing"
    assert len(modal.children) == 5
    assert [item.custom_id for item in modal.children] == ["f0", "f1", "f2", "f3", "f4"]


@pytest.mark.asyncio
async def test_text_input_follows_field_spec() -> None:
    spec = FieldSpec(
        id="acct",
        label="Account number that we can look up for you",
        placeholder="12345",
        required=True,
        style=FieldStyle.PARAGRAPH,
        max_length=32,
    )
    modal = build_form((spec,), "T" * 60, "panel2_form_button")
    text_input = modal.children[0]

    assert isinstance(text_input, discord.ui.TextInput)
    assert text_input.style is discord.TextStyle.paragraph
    assert text_input.required is True
    assert text_input.max_length == 32
    assert text_input.placeholder == "12345"
    assert len(text_input.label) <= 45
    assert len(modal.title) == 45


def test_effective_max_length_is_clamped() -> None:
    assert effective_max_length(FieldSpec(id="a", label="a")) == 4000
    assert effective_max_length(FieldSpec(id="a", label="a", max_length=0)) == 1
    assert effective_max_length(FieldSpec(id="a", label="a", max_length=9000)) == 4000


def test_extract_submission_walks_nested_rows() -> None:
    data = {
        "custom_id": "panel1_form_option_1",
        "components": [
            {"type": 1, "components": [{"type": 4, "custom_id": "acct", "value": "12345"}]},
            {"type": 18, "component": {"type": 4, "custom_id": "notes", "value": None}},
        ],
    }
    assert extract_submission(data) == {"acct": "12345", "notes": ""}
    assert extract_submission(None) == {}


def test_parse_form_is_total() -> None:
    fields = (FieldSpec(id="acct", label="Account"), FieldSpec(id="notes", label="Notes"))
    answers = parse_form({"acct": " 12345 ", "stray": "ignored"}, fields)

    assert [(a.id, a.label, a.value) for a in answers] == [("acct", "Account", "12345"), ("notes", "Notes", "")]
