from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class PanelMode(StrEnum):
    BUTTON = "button"
    DROPDOWN = "dropdown"


class FieldStyle(StrEnum):
    SHORT = "short"
    PARAGRAPH = "paragraph"


class TicketStatus(StrEnum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(slots=True, frozen=True)
class Branding:
    label: str
    url: str


@dataclass(slots=True, frozen=True)
class FieldSpec:
    id: str
    label: str
    placeholder: str | None = None
    required: bool = False
    style: FieldStyle = FieldStyle.SHORT
    max_length: int | None = None


@dataclass(slots=True, frozen=True)
class OptionSpec:
    label: str
    description: str | None = None
    emoji: str | None = None
    form: tuple[FieldSpec, ...] = ()


@dataclass(slots=True, frozen=True)
class PanelConfig:
    mode: PanelMode = PanelMode.BUTTON
    title: str = "Organizer Support"
    body: str = (
        "Have an inquiry? Use the control below to open a ticket. "
        "A private channel will be created and our team will assist you."
    )
    button_label: str = "Create ticket"
    branding: Branding | None = None
    button_form: tuple[FieldSpec, ...] = ()
    options: tuple[OptionSpec, ...] = ()


@dataclass(slots=True, frozen=True)
class AuthorizationConfig:
    destination_category_id: int | None = None
    staff_group_ids: tuple[int, ...] = ()


@dataclass(slots=True, frozen=True)
class FormAnswer:
    id: str
    label: str
    value: str


@dataclass(slots=True)
class TicketRecord:
    channel_id: int
    guild_id: int
    opener_id: int | None
    reason: str
    status: TicketStatus = TicketStatus.OPEN
    answers: list[FormAnswer] = field(default_factory=list)
    claimed_by: list[int] = field(default_factory=list)
    created_at: str | None = None

    @property
    def is_claimed(self) -> bool:
        return bool(self.claimed_by)

    def to_payload(self) -> dict[str, Any]:
        return {
            "channel_id": self.channel_id,
            "guild_id": self.guild_id,
            "opener_id": self.opener_id,
            "reason": self.reason,
            "status": self.status.value,
            "answers": [{"id": a.id, "label": a.label, "value": a.value} for a in self.answers],
            "claimed_by": list(self.claimed_by),
            "created_at": self.created_at,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> TicketRecord:
        return cls(
            channel_id=int(payload["channel_id"]),
            guild_id=int(payload["guild_id"]),
            opener_id=int(payload["opener_id"]) if payload.get("opener_id") is not None else None,
            reason=str(payload.get("reason", "")),
            status=TicketStatus(payload.get("status", TicketStatus.OPEN.value)),
            answers=[
                FormAnswer(id=str(a["id"]), label=str(a["label"]), value=str(a["value"]))
                for a in payload.get("answers", [])
            ],
            claimed_by=[int(uid) for uid in payload.get("claimed_by", [])],
            created_at=payload.get("created_at"),
        )
