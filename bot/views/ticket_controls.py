from __future__ import annotations

import discord

from core.component_ids import ComponentId, ComponentKind


def _control(kind: ComponentKind, label: str, style: discord.ButtonStyle, emoji: str | None = None) -> discord.ui.Button:
    return discord.ui.Button(
        custom_id=ComponentId.static(kind).encode(),
        label=label,
        style=style,
        emoji=emoji,
    )


class TicketControlsView(discord.ui.View):
    def __init__(self) -> None:
        super().__init__(timeout=None)
        self.add_item(_control(ComponentKind.CLAIM, "Claim", discord.ButtonStyle.primary, "🛠️"))
        self.add_item(_control(ComponentKind.CLOSE, "Close", discord.ButtonStyle.danger, "🔒"))


class CloseConfirmView(discord.ui.View):
    def __init__(self) -> None:
        super().__init__(timeout=None)
        self.add_item(_control(ComponentKind.CONFIRM_CLOSE, "Confirm close", discord.ButtonStyle.danger))
        self.add_item(_control(ComponentKind.CANCEL_CLOSE, "Cancel", discord.ButtonStyle.secondary))


class ClosedTicketView(discord.ui.View):
    def __init__(self) -> None:
        super().__init__(timeout=None)
        self.add_item(_control(ComponentKind.TRANSCRIPT, "Transcript", discord.ButtonStyle.secondary, "🧾"))
        self.add_item(_control(ComponentKind.REOPEN, "Reopen", discord.ButtonStyle.success, "♻️"))
        self.add_item(_control(ComponentKind.DELETE, "Delete", discord.ButtonStyle.danger, "🗑️"))
