from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import StrEnum

from utils.constants import DEFAULT_PANEL_ID, KNOWN_PANEL_IDS

LOGGER = logging.getLogger(__name__)

_PANEL_PATTERN = re.compile(r"panel([0-9]+)_(reason|create|form_button|form_option_([0-9]+))")
_OPTION_VALUE_PATTERN = re.compile(r"opt_([0-9]+)")


class ComponentKind(StrEnum):
    REASON_SELECT = "reason"
    CREATE_BUTTON = "create"
    OPTION_FORM = "form_option"
    BUTTON_FORM = "form_button"
    CLAIM = "ticket_claim"
    CLOSE = "ticket_close"
    CONFIRM_CLOSE = "ticket_confirm_close"
    CANCEL_CLOSE = "ticket_cancel_close"
    REOPEN = "ticket_open"
    TRANSCRIPT = "ticket_transcript"
    DELETE = "ticket_delete"
    NOOP = "noop"


PANEL_KINDS = frozenset(
    {
        ComponentKind.REASON_SELECT,
        ComponentKind.CREATE_BUTTON,
        ComponentKind.OPTION_FORM,
        ComponentKind.BUTTON_FORM,
    }
)

STATIC_KINDS = frozenset(
    {
        ComponentKind.CLAIM,
        ComponentKind.CLOSE,
        ComponentKind.CONFIRM_CLOSE,
        ComponentKind.CANCEL_CLOSE,
        ComponentKind.REOPEN,
        ComponentKind.TRANSCRIPT,
        ComponentKind.DELETE,
    }
)

_STATIC_BY_ID = {kind.value: kind for kind in STATIC_KINDS}


@dataclass(slots=True, frozen=True)
class ComponentId:
    kind: ComponentKind
    panel_id: int | None = None
    option_index: int | None = None

    @classmethod
    def reason_select(cls, panel_id: int) -> ComponentId:
        return cls(ComponentKind.REASON_SELECT, panel_id)

    @classmethod
    def create_button(cls, panel_id: int) -> ComponentId:
        return cls(ComponentKind.CREATE_BUTTON, panel_id)

    @classmethod
    def option_form(cls, panel_id: int, option_index: int) -> ComponentId:
        return cls(ComponentKind.OPTION_FORM, panel_id, option_index)

    @classmethod
    def button_form(cls, panel_id: int) -> ComponentId:
        return cls(ComponentKind.BUTTON_FORM, panel_id)

    @classmethod
    def static(cls, kind: ComponentKind) -> ComponentId:
        if kind not in STATIC_KINDS:
            raise ValueError(f"{kind} is not a static control")
        return cls(kind)

    def encode(self) -> str:
        if self.kind in STATIC_KINDS:
            return self.kind.value
        if self.kind not in PANEL_KINDS:
            raise ValueError("A no-op component has no identifier")
        if self.panel_id is None or self.panel_id < 0:
            raise ValueError(f"{self.kind} requires a panel id")
        if self.kind is ComponentKind.OPTION_FORM:
            if self.option_index is None or self.option_index < 0:
                raise ValueError("form_option requires a non-negative option index")
            return f"panel{self.panel_id}_form_option_{self.option_index}"
        return f"panel{self.panel_id}_{self.kind.value}"

    @classmethod
    def decode(cls, raw: str | None) -> ComponentId:
        if not raw:
            return cls(ComponentKind.NOOP)
        static = _STATIC_BY_ID.get(raw)
        if static is not None:
            return cls(static)
        match = _PANEL_PATTERN.fullmatch(raw)
        if match is None:
            return cls(ComponentKind.NOOP)

        panel_id = int(match.group(1))
        if panel_id not in KNOWN_PANEL_IDS:
            LOGGER.debug("Unknown panel namespace in %r, falling back to panel %s", raw, DEFAULT_PANEL_ID)
            panel_id = DEFAULT_PANEL_ID

        action = match.group(2)
        if match.group(3) is not None:
            return cls(ComponentKind.OPTION_FORM, panel_id, int(match.group(3)))
        return cls(ComponentKind(action), panel_id)


def option_value(index: int) -> str:
    return f"opt_{index}"


def parse_option_value(raw: str | None) -> int | None:
    if not raw:
        return None
    match = _OPTION_VALUE_PATTERN.fullmatch(raw)
    if match is None:
        return None
    return int(match.group(1))
