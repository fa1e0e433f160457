from __future__ import annotations

import logging
from pathlib import Path

import discord
from discord.ext import commands

from core.config import AppConfig
from core.errors import handle_app_command_error
from core.registry import CommandRegistry
from core.router import InteractionRouter, register_ticket_commands
from services.authorization import AuthorizationPolicy
from services.cache import CacheBackend, build_cache
from services.config_store import ConfigStore
from services.ticket_registry import TicketRegistry
from services.ticket_service import TicketService
from services.transcript_service import TranscriptService

LOGGER = logging.getLogger(__name__)


class TicketBot(commands.Bot):
    def __init__(self, config: AppConfig) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.members = True

        super().__init__(
            command_prefix=config.discord.prefix,
            intents=intents,
            application_id=config.discord.application_id,
            allowed_mentions=discord.AllowedMentions(everyone=False, roles=True, users=True, replied_user=False),
            help_command=None,
        )
        self.config = config
        self.root_dir = Path(__file__).resolve().parent.parent
        self.cache: CacheBackend | None = None
        self.config_store = ConfigStore(Path(config.storage.data_directory), config.storage.panel_ids)
        self.policy = AuthorizationPolicy(self.config_store)
        self.command_registry = CommandRegistry()

        # Cache-backed services are initialized during setup_hook.
        self.ticket_registry: TicketRegistry
        self.ticket_service: TicketService
        self.transcript_service: TranscriptService
        self.router: InteractionRouter

    async def setup_hook(self) -> None:
        self.config_store.ensure_defaults()
        self.cache = await build_cache(self.config.redis)

        self.ticket_registry = TicketRegistry(self.cache)
        self.ticket_service = TicketService(self.ticket_registry, self.policy)
        self.transcript_service = TranscriptService(self.config.transcripts)
        self.router = InteractionRouter(
            store=self.config_store,
            tickets=self.ticket_service,
            transcripts=self.transcript_service,
            registry=self.command_registry,
        )
        register_ticket_commands(self.command_registry, self.router)
        LOGGER.info("Registered commands: %s", ", ".join(self.command_registry.names()))

        await self.load_configured_extensions()
        self.tree.on_error = handle_app_command_error  # type: ignore[assignment]

        if self.config.discord.sync_commands_on_start:
            guild = discord.Object(id=self.config.discord.guild_id) if self.config.discord.guild_id else None
            if guild is not None:
                self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            LOGGER.info("Synced %s application commands", len(synced))

    async def load_configured_extensions(self) -> None:
        for ext in self.config.enabled_extensions:
            try:
                await self.load_extension(ext)
                LOGGER.info("Loaded extension: %s", ext)
            except commands.ExtensionAlreadyLoaded:
                LOGGER.warning("Extension already loaded: %s", ext)
            except commands.ExtensionError:
                LOGGER.exception("Failed to load extension: %s", ext)

    async def on_ready(self) -> None:
        LOGGER.info("Bot ready as %s (%s)", self.user, self.user.id if self.user else "n/a")
        activity = discord.Activity(type=discord.ActivityType.watching, name=self.config.discord.status_text)
        await self.change_presence(status=discord.Status.online, activity=activity)

    async def close(self) -> None:
        await super().close()
        if self.cache:
            await self.cache.close()
