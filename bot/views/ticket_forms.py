from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import discord

from core.models import FieldSpec, FieldStyle, FormAnswer
from utils.constants import (
    DEFAULT_PANEL_TITLE,
    MAX_FORM_FIELDS,
    MAX_INPUT_LABEL,
    MAX_INPUT_LENGTH,
    MAX_MODAL_TITLE,
    MAX_PLACEHOLDER,
    MIN_INPUT_LENGTH,
)


def effective_max_length(spec: FieldSpec) -> int:
    if spec.max_length is None:
        return MAX_INPUT_LENGTH
    return max(MIN_INPUT_LENGTH, min(MAX_INPUT_LENGTH, spec.max_length))


def _text_input(spec: FieldSpec) -> discord.ui.TextInput:
    style = discord.TextStyle.paragraph if spec.style is FieldStyle.PARAGRAPH else discord.TextStyle.short
    return discord.ui.TextInput(
        label=(spec.label or spec.id)[:MAX_INPUT_LABEL],
        custom_id=spec.id,
        style=style,
        placeholder=spec.placeholder[:MAX_PLACEHOLDER] if spec.placeholder else None,
        required=spec.required,
        max_length=effective_max_length(spec),
    )


class TicketFormModal(discord.ui.Modal):
    def __init__(self, fields: Sequence[FieldSpec], title: str, custom_id: str) -> None:
        super().__init__(title=(title or DEFAULT_PANEL_TITLE)[:MAX_MODAL_TITLE], custom_id=custom_id, timeout=600)
        self.field_specs = tuple(fields[:MAX_FORM_FIELDS])
        for spec in self.field_specs:
            self.add_item(_text_input(spec))


def build_form(fields: Sequence[FieldSpec], title: str, custom_id: str) -> TicketFormModal:
    return TicketFormModal(fields, title, custom_id)


def extract_submission(data: Mapping[str, Any] | None) -> dict[str, str]:
    values: dict[str, str] = {}

    def walk(node: Any) -> None:
        if isinstance(node, Mapping):
            custom_id = node.get("custom_id")
            if isinstance(custom_id, str) and "value" in node:
                values[custom_id] = "" if node["value"] is None else str(node["value"])
            for key in ("components", "component"):
                if key in node:
                    walk(node[key])
        elif isinstance(node, list):
            for child in node:
                walk(child)

    if data:
        walk(data.get("components"))
    return values


def parse_form(values: Mapping[str, str], fields: Sequence[FieldSpec]) -> list[FormAnswer]:
    return [
        FormAnswer(
            id=spec.id,
            label=spec.label or spec.id,
            value=(values.get(spec.id) or "").strip(),
        )
        for spec in fields[:MAX_FORM_FIELDS]
    ]
