from __future__ import annotations

import logging
from dataclasses import dataclass

import discord
from discord import app_commands
from discord.ext import commands

LOGGER = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again."


class BotError(RuntimeError):
    user_message: str = "An unexpected error occurred."


@dataclass(slots=True)
class ConfigurationMissingError(BotError):
    user_message: str = "Support category is not set. Ask an administrator to configure it on the dashboard."


@dataclass(slots=True)
class PermissionDeniedError(BotError):
    user_message: str = "I need the **Manage Channels** permission to do that."


@dataclass(slots=True)
class InvalidSelectionError(BotError):
    user_message: str = "That option is no longer available. Please reopen the panel and try again."


@dataclass(slots=True)
class StaffRequiredError(BotError):
    user_message: str = "You need **Manage Channels** or a staff role to do that."


@dataclass(slots=True)
class TicketNotFoundError(BotError):
    user_message: str = "This command must be run inside a ticket channel."


@dataclass(slots=True)
class ValidationError(BotError):
    user_message: str = "The provided input is not valid."


class ResponseAlreadyUsedError(RuntimeError):
    pass


async def handle_app_command_error(
    interaction: discord.Interaction[commands.Bot], error: app_commands.AppCommandError
) -> None:
    message = GENERIC_FAILURE_MESSAGE
    if isinstance(error, app_commands.CheckFailure):
        message = "You are not authorized for this command."
    elif isinstance(error, app_commands.TransformerError):
        message = "Command argument was invalid."
    elif isinstance(error, app_commands.CommandInvokeError) and isinstance(error.original, BotError):
        message = error.original.user_message

    LOGGER.exception(
        "Slash command failed. command=%s guild=%s user=%s",
        getattr(interaction.command, "qualified_name", None),
        getattr(interaction.guild, "id", None),
        interaction.user.id if interaction.user else None,
        exc_info=error,
    )
    embed = discord.Embed(title="Error", description=message, color=discord.Color.red())
    try:
        if interaction.response.is_done():
            await interaction.followup.send(embed=embed, ephemeral=True)
        else:
            await interaction.response.send_message(embed=embed, ephemeral=True)
    except discord.HTTPException:
        LOGGER.warning("Could not deliver slash command error to user=%s", interaction.user.id)
