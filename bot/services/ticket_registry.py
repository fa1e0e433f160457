from __future__ import annotations

import json
import logging
import re

import discord

from core.models import TicketRecord, TicketStatus
from services.cache import CacheBackend
from utils.constants import OPENER_MARKER_PREFIX

LOGGER = logging.getLogger(__name__)

_KEY_PREFIX = "ticket:"
_OPENER_PATTERN = re.compile(re.escape(OPENER_MARKER_PREFIX) + r"([0-9]+)")


def opener_marker(opener_id: int) -> str:
    return f"{OPENER_MARKER_PREFIX}{opener_id}"


def parse_opener_marker(topic: str | None) -> int | None:
    if not topic:
        return None
    match = _OPENER_PATTERN.search(topic)
    if match is None:
        return None
    return int(match.group(1))


class TicketRegistry:
    def __init__(self, cache: CacheBackend) -> None:
        self.cache = cache

    @staticmethod
    def _key(channel_id: int) -> str:
        return f"{_KEY_PREFIX}{channel_id}"

    async def get(self, channel_id: int) -> TicketRecord | None:
        raw = await self.cache.get(self._key(channel_id))
        if raw is None:
            return None
        try:
            return TicketRecord.from_payload(json.loads(raw))
        except (ValueError, KeyError, TypeError):
            LOGGER.warning("Discarding unreadable ticket record for channel %s", channel_id)
            await self.cache.delete(self._key(channel_id))
            return None

    async def save(self, record: TicketRecord) -> None:
        await self.cache.set(self._key(record.channel_id), json.dumps(record.to_payload(), ensure_ascii=True))

    async def remove(self, channel_id: int) -> None:
        await self.cache.delete(self._key(channel_id))

    async def list_records(self) -> list[TicketRecord]:
        records: list[TicketRecord] = []
        for key in await self.cache.keys(_KEY_PREFIX):
            record = await self.get(int(key[len(_KEY_PREFIX) :]))
            if record is not None:
                records.append(record)
        return records

    async def find(self, channel: discord.abc.GuildChannel) -> TicketRecord | None:
        record = await self.get(channel.id)
        if record is not None:
            return record
        opener_id = parse_opener_marker(getattr(channel, "topic", None))
        if opener_id is None:
            return None
        LOGGER.info("Recovered ticket record for channel %s from its topic marker", channel.id)
        record = TicketRecord(
            channel_id=channel.id,
            guild_id=channel.guild.id,
            opener_id=opener_id,
            reason="",
        )
        await self.save(record)
        return record

    async def ensure(self, channel: discord.abc.GuildChannel) -> TicketRecord:
        record = await self.find(channel)
        if record is not None:
            return record
        LOGGER.warning("Channel %s has no ticket record or opener marker", channel.id)
        record = TicketRecord(channel_id=channel.id, guild_id=channel.guild.id, opener_id=None, reason="")
        await self.save(record)
        return record

    async def set_status(self, record: TicketRecord, status: TicketStatus) -> TicketRecord:
        record.status = status
        await self.save(record)
        return record
