from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from core.bot import TicketBot

LOGGER = logging.getLogger(__name__)

_ROUTED_TYPES = {discord.InteractionType.component, discord.InteractionType.modal_submit}


class TicketsCog(commands.Cog):
    ticket = app_commands.Group(name="ticket", description="Open or close a support ticket.", guild_only=True)
    panel = app_commands.Group(name="panel", description="Manage ticket panels.", guild_only=True)

    def __init__(self, bot: TicketBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.type not in _ROUTED_TYPES:
            return
        await self.bot.router.handle(interaction)

    @ticket.command(name="open", description="Open a private ticket.")
    @app_commands.describe(subject="Short subject")
    async def ticket_open(self, interaction: discord.Interaction, subject: str | None = None) -> None:
        await self.bot.router.invoke(interaction, "ticket open", subject=subject)

    @ticket.command(name="close", description="Close this ticket (run inside a ticket channel).")
    async def ticket_close(self, interaction: discord.Interaction) -> None:
        await self.bot.router.invoke(interaction, "ticket close")

    @panel.command(name="post", description="Post a ticket panel in this channel.")
    @app_commands.describe(number="Which panel to post")
    @app_commands.choices(
        number=[
            app_commands.Choice(name="Panel #1", value=1),
            app_commands.Choice(name="Panel #2", value=2),
        ]
    )
    async def panel_post(self, interaction: discord.Interaction, number: app_commands.Choice[int]) -> None:
        await self.bot.router.invoke(interaction, "panel post", number=number.value)


async def setup(bot: TicketBot) -> None:
    await bot.add_cog(TicketsCog(bot))
