from __future__ import annotations

import logging
import re
from collections.abc import Sequence

import discord

from core.errors import ConfigurationMissingError, PermissionDeniedError, TicketNotFoundError
from core.models import FormAnswer, TicketRecord, TicketStatus
from services.authorization import AuthorizationPolicy
from services.ticket_registry import TicketRegistry, opener_marker, parse_opener_marker
from utils.embeds import ticket_closed_embed, ticket_reopened_embed, ticket_summary_embed
from utils.time import channel_suffix, to_iso, utc_now
from views.ticket_controls import ClosedTicketView, TicketControlsView

LOGGER = logging.getLogger(__name__)


def opener_grant() -> discord.PermissionOverwrite:
    return discord.PermissionOverwrite(view_channel=True, send_messages=True, read_message_history=True)


def opener_revoked() -> discord.PermissionOverwrite:
    return discord.PermissionOverwrite(view_channel=False, send_messages=False, read_message_history=True)


def staff_grant() -> discord.PermissionOverwrite:
    return discord.PermissionOverwrite(view_channel=True, send_messages=True, read_message_history=True)


def bot_grant() -> discord.PermissionOverwrite:
    return discord.PermissionOverwrite(
        view_channel=True,
        send_messages=True,
        read_message_history=True,
        manage_channels=True,
    )


class TicketService:
    def __init__(self, registry: TicketRegistry, policy: AuthorizationPolicy) -> None:
        self.registry = registry
        self.policy = policy

    @staticmethod
    def sanitize_channel_fragment(name: str) -> str:
        name = name.strip().lower()
        name = re.sub(r"[^a-z0-9-]+", "-", name)
        name = re.sub(r"-{2,}", "-", name).strip("-")
        return name[:32] or "user"

    async def require_ticket(self, channel: discord.abc.GuildChannel) -> TicketRecord:
        record = await self.registry.find(channel)
        if record is None:
            raise TicketNotFoundError()
        return record

    async def create_ticket(
        self,
        guild: discord.Guild,
        opener: discord.Member,
        reason: str,
        answers: Sequence[FormAnswer] = (),
    ) -> TicketRecord:
        auth = self.policy.current()
        if auth.destination_category_id is None:
            raise ConfigurationMissingError()
        category = guild.get_channel(auth.destination_category_id)
        if not isinstance(category, discord.CategoryChannel):
            LOGGER.warning("Configured category %s not found in guild %s", auth.destination_category_id, guild.id)
            raise ConfigurationMissingError()

        overwrites: dict[discord.abc.Snowflake, discord.PermissionOverwrite] = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            opener: opener_grant(),
            guild.me: bot_grant(),
        }
        for role_id in auth.staff_group_ids:
            role = guild.get_role(role_id)
            if role is None:
                LOGGER.debug("Staff role %s not found in guild %s", role_id, guild.id)
                continue
            overwrites[role] = staff_grant()

        created_at = utc_now()
        channel_name = f"ticket-{self.sanitize_channel_fragment(opener.name)}-{channel_suffix(created_at)}"
        try:
            channel = await guild.create_text_channel(
                name=channel_name,
                category=category,
                overwrites=overwrites,
                topic=f"{opener_marker(opener.id)} | reason: {reason}"[:1024],
                reason=f"Ticket opened by {opener} ({opener.id})",
            )
        except discord.Forbidden as exc:
            raise PermissionDeniedError() from exc

        record = TicketRecord(
            channel_id=channel.id,
            guild_id=guild.id,
            opener_id=opener.id,
            reason=reason,
            answers=list(answers),
            created_at=to_iso(created_at),
        )
        await self.registry.save(record)
        await channel.send(
            content=f"<@{opener.id}>",
            embed=ticket_summary_embed(
                opener_id=opener.id,
                reason=reason,
                ticket_id=channel.id,
                created_at=created_at,
                answers=record.answers,
            ),
            view=TicketControlsView(),
        )
        LOGGER.info("Ticket %s opened by %s in guild %s (reason=%s)", channel.id, opener.id, guild.id, reason)
        return record

    async def claim_ticket(self, channel: discord.TextChannel, actor: discord.Member) -> TicketRecord:
        self.policy.require_staff(actor)
        record = await self.registry.ensure(channel)
        if actor.id not in record.claimed_by:
            record.claimed_by.append(actor.id)
            await self.registry.save(record)
        LOGGER.info("Ticket %s claimed by %s", channel.id, actor.id)
        return record

    async def request_close(self, channel: discord.TextChannel, actor: discord.Member) -> None:
        self.policy.require_staff(actor)
        LOGGER.debug("Close requested for ticket %s by %s", channel.id, actor.id)

    async def _resolve_opener(self, channel: discord.TextChannel, record: TicketRecord) -> discord.Member | None:
        opener_id = record.opener_id or parse_opener_marker(channel.topic)
        if opener_id is None:
            return None
        member = channel.guild.get_member(opener_id)
        if member is not None:
            return member
        try:
            return await channel.guild.fetch_member(opener_id)
        except discord.NotFound:
            return None

    async def _set_opener_overwrite(
        self,
        channel: discord.TextChannel,
        record: TicketRecord,
        overwrite: discord.PermissionOverwrite,
    ) -> bool:
        opener = await self._resolve_opener(channel, record)
        if opener is None:
            LOGGER.warning("Ticket %s has no resolvable opener; skipping permission change", channel.id)
            return False
        try:
            await channel.set_permissions(opener, overwrite=overwrite, reason="Ticket state change")
        except discord.Forbidden as exc:
            raise PermissionDeniedError() from exc
        return True

    async def confirm_close(self, channel: discord.TextChannel, actor: discord.Member) -> TicketRecord:
        self.policy.require_staff(actor)
        record = await self.registry.ensure(channel)
        await self._set_opener_overwrite(channel, record, opener_revoked())
        await self.registry.set_status(record, TicketStatus.CLOSED)
        await channel.send(embed=ticket_closed_embed(actor.id), view=ClosedTicketView())
        LOGGER.info("Ticket %s closed by %s", channel.id, actor.id)
        return record

    async def reopen_ticket(self, channel: discord.TextChannel, actor: discord.Member) -> TicketRecord:
        self.policy.require_staff(actor)
        record = await self.registry.ensure(channel)
        await self._set_opener_overwrite(channel, record, opener_grant())
        await self.registry.set_status(record, TicketStatus.OPEN)
        await channel.send(embed=ticket_reopened_embed(actor.id), view=TicketControlsView())
        LOGGER.info("Ticket %s reopened by %s", channel.id, actor.id)
        return record

    async def delete_ticket(self, channel: discord.TextChannel, actor: discord.Member) -> None:
        self.policy.require_staff(actor)
        try:
            await channel.delete(reason=f"Ticket deleted by {actor} ({actor.id})")
        except discord.Forbidden as exc:
            raise PermissionDeniedError() from exc
        await self.registry.remove(channel.id)
        LOGGER.info("Ticket %s deleted by %s", channel.id, actor.id)
