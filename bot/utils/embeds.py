from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

import discord

from core.models import FormAnswer
from utils.constants import MAX_EMBED_FIELD_NAME, MAX_EMBED_FIELD_VALUE
from utils.time import discord_timestamp


def make_embed(
    title: str,
    description: str,
    color: discord.Color | None = None,
    footer: str | None = None,
) -> discord.Embed:
    resolved_color = color if color is not None else discord.Color.blurple()
    embed = discord.Embed(
        title=title,
        description=description,
        color=resolved_color,
        timestamp=datetime.now(UTC),
    )
    if footer:
        embed.set_footer(text=footer)
    return embed


def staff_embed(title: str, description: str) -> discord.Embed:
    return make_embed(title=title, description=description, color=discord.Color.gold())


def success_embed(message: str) -> discord.Embed:
    return make_embed(title="Success", description=message, color=discord.Color.green())


def error_embed(message: str) -> discord.Embed:
    return make_embed(title="Error", description=message, color=discord.Color.red())


def ticket_summary_embed(
    opener_id: int,
    reason: str,
    ticket_id: int,
    created_at: datetime,
    answers: Sequence[FormAnswer],
) -> discord.Embed:
    embed = make_embed(
        title="New ticket",
        description="A staff member will be with you shortly.",
        color=discord.Color.blurple(),
        footer=f"Ticket ID: {ticket_id}",
    )
    embed.add_field(name="Opened by", value=f"<@{opener_id}>", inline=True)
    embed.add_field(name="Reason", value=(reason or "-")[:MAX_EMBED_FIELD_VALUE], inline=True)
    embed.add_field(name="Created", value=discord_timestamp(created_at), inline=True)
    embed.add_field(name="Ticket ID", value=str(ticket_id), inline=True)
    for answer in answers:
        embed.add_field(
            name=answer.label[:MAX_EMBED_FIELD_NAME] or answer.id,
            value=(answer.value or "-")[:MAX_EMBED_FIELD_VALUE],
            inline=False,
        )
    return embed


def ticket_closed_embed(actor_id: int) -> discord.Embed:
    return make_embed(
        title="Ticket closed",
        description=f"Closed by <@{actor_id}>. Use the controls below to export, reopen or delete it.",
        color=discord.Color.dark_grey(),
    )


def ticket_reopened_embed(actor_id: int) -> discord.Embed:
    return make_embed(
        title="Ticket reopened",
        description=f"Reopened by <@{actor_id}>.",
        color=discord.Color.green(),
    )
