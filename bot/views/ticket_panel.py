from __future__ import annotations

import re

import discord

from core.component_ids import ComponentId, option_value
from core.models import OptionSpec, PanelConfig, PanelMode
from utils.constants import (
    DEFAULT_BUTTON_LABEL,
    DEFAULT_OPTION_LABEL,
    DEFAULT_PANEL_BODY,
    DEFAULT_PANEL_TITLE,
    MAX_BUTTON_LABEL,
    MAX_OPTION_TEXT,
    MAX_SELECT_OPTIONS,
    PANEL_COLOR,
    SELECT_PLACEHOLDER,
)

_CUSTOM_EMOJI = re.compile(r"<(a)?:(\w+):([0-9]+)>")


def parse_emoji(value: str | None) -> discord.PartialEmoji | str | None:
    if not value:
        return None
    text = str(value).strip()
    if not text:
        return None
    match = _CUSTOM_EMOJI.fullmatch(text)
    if match:
        return discord.PartialEmoji(name=match.group(2), id=int(match.group(3)), animated=bool(match.group(1)))
    return text


def _select_option(option: OptionSpec, index: int) -> discord.SelectOption:
    description = option.description[:MAX_OPTION_TEXT] if option.description else None
    return discord.SelectOption(
        label=(option.label or DEFAULT_OPTION_LABEL)[:MAX_OPTION_TEXT],
        value=option_value(index),
        description=description,
        emoji=parse_emoji(option.emoji),
    )


class ReasonSelect(discord.ui.Select["PanelView"]):
    def __init__(self, panel: PanelConfig, panel_id: int) -> None:
        super().__init__(
            custom_id=ComponentId.reason_select(panel_id).encode(),
            placeholder=SELECT_PLACEHOLDER,
            min_values=1,
            max_values=1,
            options=[_select_option(option, idx) for idx, option in enumerate(panel.options[:MAX_SELECT_OPTIONS])],
            row=0,
        )


class CreateTicketButton(discord.ui.Button["PanelView"]):
    def __init__(self, panel: PanelConfig, panel_id: int) -> None:
        super().__init__(
            custom_id=ComponentId.create_button(panel_id).encode(),
            style=discord.ButtonStyle.primary,
            label=(panel.button_label or DEFAULT_BUTTON_LABEL)[:MAX_BUTTON_LABEL],
            row=0,
        )


class PanelView(discord.ui.View):
    def __init__(self, panel: PanelConfig, panel_id: int) -> None:
        super().__init__(timeout=None)
        self.panel_id = panel_id
        if panel.mode is PanelMode.DROPDOWN:
            if panel.options:
                self.add_item(ReasonSelect(panel, panel_id))
        else:
            self.add_item(CreateTicketButton(panel, panel_id))
        if panel.branding is not None:
            self.add_item(
                discord.ui.Button(
                    style=discord.ButtonStyle.link,
                    label=panel.branding.label[:MAX_BUTTON_LABEL],
                    url=panel.branding.url,
                    row=1,
                )
            )


def render_panel(panel: PanelConfig, panel_id: int) -> PanelView:
    return PanelView(panel, panel_id)


def panel_embed(panel: PanelConfig) -> discord.Embed:
    return discord.Embed(
        title=panel.title or DEFAULT_PANEL_TITLE,
        description=panel.body or DEFAULT_PANEL_BODY,
        color=PANEL_COLOR,
    )
