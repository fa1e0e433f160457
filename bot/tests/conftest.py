from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from services.authorization import AuthorizationPolicy
from services.cache import MemoryCache
from services.config_store import ConfigStore
from services.ticket_registry import TicketRegistry
from services.ticket_service import TicketService

CATEGORY_ID = 4242
STAFF_ROLE_ID = 20


def make_member(member_id: int, name: str = "member", *, manage: bool = False, role_ids: tuple[int, ...] = ()) -> MagicMock:
    member = MagicMock(spec=discord.Member)
    member.id = member_id
    member.name = name
    member.mention = f"<@{member_id}>"
    member.guild_permissions = discord.Permissions(manage_channels=manage)
    member.roles = [SimpleNamespace(id=role_id) for role_id in role_ids]
    return member


def make_text_channel(channel_id: int, guild: MagicMock, topic: str | None = None) -> MagicMock:
    channel = MagicMock(spec=discord.TextChannel)
    channel.id = channel_id
    channel.name = f"ticket-{channel_id}"
    channel.guild = guild
    channel.topic = topic
    channel.send = AsyncMock()
    channel.set_permissions = AsyncMock()
    channel.delete = AsyncMock()
    return channel


@pytest.fixture
def store(tmp_path: Path, monkeypatch) -> ConfigStore:
    monkeypatch.delenv("SUPPORT_CATEGORY_ID", raising=False)
    monkeypatch.delenv("SUPPORT_ROLE_ID", raising=False)
    config_store = ConfigStore(tmp_path / "data", (1, 2))
    config_store.ensure_defaults()
    config_store.config_path.write_text(
        json.dumps({"destinationCategoryId": str(CATEGORY_ID), "staffGroupIds": [str(STAFF_ROLE_ID), "30"]}),
        encoding="utf-8",
    )
    return config_store


@pytest.fixture
def registry() -> TicketRegistry:
    return TicketRegistry(MemoryCache())


@pytest.fixture
def service(store: ConfigStore, registry: TicketRegistry) -> TicketService:
    return TicketService(registry, AuthorizationPolicy(store))


@pytest.fixture
def guild() -> MagicMock:
    guild = MagicMock(spec=discord.Guild)
    guild.id = 123
    guild.default_role = MagicMock(id=123)
    guild.me = MagicMock(id=1)
    staff_role = MagicMock(id=STAFF_ROLE_ID)
    category = MagicMock(spec=discord.CategoryChannel)
    category.id = CATEGORY_ID

    guild.get_channel = MagicMock(side_effect=lambda cid: category if cid == CATEGORY_ID else None)
    guild.get_role = MagicMock(side_effect=lambda rid: staff_role if rid == STAFF_ROLE_ID else None)
    guild.get_member = MagicMock(return_value=None)
    guild.fetch_member = AsyncMock(side_effect=discord.NotFound(MagicMock(status=404, reason="Not Found"), "missing"))
    guild.created_channels = []

    async def create_text_channel(**kwargs):
        channel = make_text_channel(900 + len(guild.created_channels), guild, kwargs.get("topic"))
        channel.created_with = kwargs
        guild.created_channels.append(channel)
        return channel

    guild.create_text_channel = AsyncMock(side_effect=create_text_channel)
    return guild
