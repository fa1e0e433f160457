from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import discord

from core.component_ids import ComponentId, ComponentKind, parse_option_value
from core.errors import (
    GENERIC_FAILURE_MESSAGE,
    BotError,
    InvalidSelectionError,
    PermissionDeniedError,
    ResponseAlreadyUsedError,
    ValidationError,
)
from core.models import FormAnswer, PanelConfig
from core.registry import CommandRegistry
from core.responder import Responder
from services.config_store import ConfigStore
from services.ticket_service import TicketService
from services.transcript_service import TranscriptService
from utils.constants import DEFAULT_COMMAND_SUBJECT, DEFAULT_PANEL_ID, DEFAULT_PANEL_TITLE
from utils.embeds import make_embed, staff_embed, success_embed
from views.ticket_controls import CloseConfirmView
from views.ticket_forms import build_form, extract_submission, parse_form
from views.ticket_panel import panel_embed, render_panel

LOGGER = logging.getLogger(__name__)

ComponentHandler = Callable[[Responder, ComponentId], Awaitable[None]]


def _member(interaction: discord.Interaction) -> discord.Member:
    if interaction.guild is None or not isinstance(interaction.user, discord.Member):
        raise ValidationError("Guild context is required.")
    return interaction.user


def _ticket_channel(interaction: discord.Interaction) -> discord.TextChannel:
    channel = interaction.channel
    if not isinstance(channel, discord.TextChannel):
        raise ValidationError("Ticket controls only work inside ticket channels.")
    return channel


class InteractionRouter:
    def __init__(
        self,
        *,
        store: ConfigStore,
        tickets: TicketService,
        transcripts: TranscriptService,
        registry: CommandRegistry,
    ) -> None:
        self.store = store
        self.tickets = tickets
        self.transcripts = transcripts
        self.registry = registry
        self._component_handlers: dict[ComponentKind, ComponentHandler] = {
            ComponentKind.REASON_SELECT: self._on_reason_select,
            ComponentKind.CREATE_BUTTON: self._on_create_button,
            ComponentKind.OPTION_FORM: self._on_option_form,
            ComponentKind.BUTTON_FORM: self._on_button_form,
            ComponentKind.CLAIM: self._on_claim,
            ComponentKind.CLOSE: self._on_close,
            ComponentKind.CONFIRM_CLOSE: self._on_confirm_close,
            ComponentKind.CANCEL_CLOSE: self._on_cancel_close,
            ComponentKind.REOPEN: self._on_reopen,
            ComponentKind.TRANSCRIPT: self._on_transcript,
            ComponentKind.DELETE: self._on_delete,
            ComponentKind.NOOP: self._on_noop,
        }

    @staticmethod
    def classify(interaction: discord.Interaction) -> ComponentId:
        data = interaction.data or {}
        custom_id = data.get("custom_id")
        return ComponentId.decode(custom_id if isinstance(custom_id, str) else None)

    async def handle(self, interaction: discord.Interaction) -> None:
        component = self.classify(interaction)
        responder = Responder(interaction)
        handler = self._component_handlers[component.kind]
        await self._run(responder, lambda: handler(responder, component), component.kind.value)

    async def invoke(self, interaction: discord.Interaction, name: str, **options: Any) -> None:
        responder = Responder(interaction)
        handler = self.registry.get(name)
        if handler is None:
            LOGGER.warning("No handler registered for command %r", name)
            await self._run(responder, lambda: self._unknown_command(name), name)
            return
        await self._run(responder, lambda: handler(responder, options), name)

    async def _run(self, responder: Responder, call: Callable[[], Awaitable[None]], label: str) -> None:
        user_id = responder.interaction.user.id if responder.interaction.user else None
        try:
            await call()
            await responder.finish()
        except BotError as exc:
            LOGGER.info("Interaction %s rejected for user=%s: %s", label, user_id, type(exc).__name__)
            await self._deliver_failure(responder, exc.user_message)
        except Exception:
            LOGGER.exception("Interaction %s failed for user=%s", label, user_id)
            await self._deliver_failure(responder, GENERIC_FAILURE_MESSAGE)

    async def _deliver_failure(self, responder: Responder, message: str) -> None:
        try:
            await responder.fail(message)
        except (discord.HTTPException, ResponseAlreadyUsedError):
            LOGGER.warning("Could not deliver failure message to user", exc_info=True)

    async def _unknown_command(self, name: str) -> None:
        raise ValidationError(f"Unknown command: {name}")

    async def _open_ticket(
        self,
        responder: Responder,
        member: discord.Member,
        reason: str,
        answers: Sequence[FormAnswer] = (),
    ) -> None:
        await responder.defer(ephemeral=True)
        record = await self.tickets.create_ticket(member.guild, member, reason, answers)
        await responder.resolve(embed=success_embed(f"Ticket created: <#{record.channel_id}>"))

    async def _reset_panel_message(self, interaction: discord.Interaction, panel: PanelConfig, panel_id: int) -> None:
        if interaction.message is None:
            return
        try:
            await interaction.message.edit(view=render_panel(panel, panel_id))
        except discord.HTTPException:
            LOGGER.warning(
                "Could not reset panel %s on message %s", panel_id, interaction.message.id, exc_info=True
            )

    def _load_panel(self, component: ComponentId) -> PanelConfig:
        return self.store.load_panel(component.panel_id or DEFAULT_PANEL_ID).value

    async def _on_reason_select(self, responder: Responder, component: ComponentId) -> None:
        interaction = responder.interaction
        member = _member(interaction)
        panel = self._load_panel(component)
        await self._reset_panel_message(interaction, panel, component.panel_id or DEFAULT_PANEL_ID)

        values = (interaction.data or {}).get("values") or []
        index = parse_option_value(values[0] if values else None)
        if index is None or index >= len(panel.options):
            raise InvalidSelectionError()
        option = panel.options[index]
        if option.form:
            custom_id = ComponentId.option_form(component.panel_id or DEFAULT_PANEL_ID, index).encode()
            await responder.modal(build_form(option.form, option.label, custom_id))
            return
        await self._open_ticket(responder, member, option.label)

    async def _on_create_button(self, responder: Responder, component: ComponentId) -> None:
        member = _member(responder.interaction)
        panel = self._load_panel(component)
        if panel.button_form:
            custom_id = ComponentId.button_form(component.panel_id or DEFAULT_PANEL_ID).encode()
            await responder.modal(build_form(panel.button_form, panel.title, custom_id))
            return
        await self._open_ticket(responder, member, panel.title or DEFAULT_PANEL_TITLE)

    async def _on_option_form(self, responder: Responder, component: ComponentId) -> None:
        interaction = responder.interaction
        member = _member(interaction)
        panel = self._load_panel(component)
        index = component.option_index
        if index is None or index >= len(panel.options):
            raise InvalidSelectionError()
        option = panel.options[index]
        answers = parse_form(extract_submission(interaction.data), option.form)
        await self._open_ticket(responder, member, option.label, answers)

    async def _on_button_form(self, responder: Responder, component: ComponentId) -> None:
        interaction = responder.interaction
        member = _member(interaction)
        panel = self._load_panel(component)
        answers = parse_form(extract_submission(interaction.data), panel.button_form)
        await self._open_ticket(responder, member, panel.title or DEFAULT_PANEL_TITLE, answers)

    async def _on_claim(self, responder: Responder, component: ComponentId) -> None:
        member = _member(responder.interaction)
        channel = _ticket_channel(responder.interaction)
        await self.tickets.claim_ticket(channel, member)
        await responder.reply(embed=staff_embed("Ticket claimed", f"Claimed by {member.mention}."), ephemeral=False)

    async def _prompt_close(self, responder: Responder) -> None:
        member = _member(responder.interaction)
        channel = _ticket_channel(responder.interaction)
        await self.tickets.request_close(channel, member)
        await responder.reply(
            embed=make_embed("Close ticket?", "The opener will lose access to this channel."),
            view=CloseConfirmView(),
            ephemeral=True,
        )

    async def _on_close(self, responder: Responder, component: ComponentId) -> None:
        await self._prompt_close(responder)

    async def _on_cancel_close(self, responder: Responder, component: ComponentId) -> None:
        await responder.update(embed=make_embed("Close cancelled", "The ticket stays open."), view=None)

    async def _on_confirm_close(self, responder: Responder, component: ComponentId) -> None:
        member = _member(responder.interaction)
        channel = _ticket_channel(responder.interaction)
        self.tickets.policy.require_staff(member)
        await responder.defer(ephemeral=True)
        await self.tickets.confirm_close(channel, member)
        await responder.resolve(embed=success_embed("Ticket closed."))

    async def _on_reopen(self, responder: Responder, component: ComponentId) -> None:
        member = _member(responder.interaction)
        channel = _ticket_channel(responder.interaction)
        self.tickets.policy.require_staff(member)
        await responder.defer(ephemeral=True)
        await self.tickets.reopen_ticket(channel, member)
        await responder.resolve(embed=success_embed("Ticket reopened."))

    async def _on_transcript(self, responder: Responder, component: ComponentId) -> None:
        member = _member(responder.interaction)
        channel = _ticket_channel(responder.interaction)
        self.tickets.policy.require_staff(member)
        await responder.defer(ephemeral=False)
        artifact = await self.transcripts.export(channel)
        note = " (truncated)" if artifact.truncated else ""
        await responder.resolve(
            content=f"Transcript of {artifact.message_count} messages{note}.",
            file=artifact.to_file(),
        )

    async def _on_delete(self, responder: Responder, component: ComponentId) -> None:
        await self._delete(responder, _member(responder.interaction), _ticket_channel(responder.interaction))

    async def _delete(self, responder: Responder, member: discord.Member, channel: discord.TextChannel) -> None:
        self.tickets.policy.require_staff(member)
        await responder.defer(ephemeral=True)
        await self.tickets.delete_ticket(channel, member)
        try:
            await responder.resolve(content="Ticket deleted.")
        except discord.HTTPException:
            LOGGER.debug("Deleted ticket %s; its pending reply went with the channel", channel.id)

    async def _on_noop(self, responder: Responder, component: ComponentId) -> None:
        LOGGER.debug("Ignoring unrecognized component %r", (responder.interaction.data or {}).get("custom_id"))
        await responder.acknowledge()

    async def command_ticket_open(self, responder: Responder, options: dict[str, Any]) -> None:
        member = _member(responder.interaction)
        subject = str(options.get("subject") or "").strip() or DEFAULT_COMMAND_SUBJECT
        await self._open_ticket(responder, member, subject)

    async def command_ticket_close(self, responder: Responder, options: dict[str, Any]) -> None:
        member = _member(responder.interaction)
        channel = _ticket_channel(responder.interaction)
        await self.tickets.require_ticket(channel)
        await self._delete(responder, member, channel)

    async def command_panel_post(self, responder: Responder, options: dict[str, Any]) -> None:
        interaction = responder.interaction
        member = _member(interaction)
        self.tickets.policy.require_staff(member)
        panel_id = int(options.get("number") or DEFAULT_PANEL_ID)
        if panel_id not in self.store.panel_ids:
            raise InvalidSelectionError()
        channel = interaction.channel
        if not isinstance(channel, discord.abc.Messageable):
            raise ValidationError("Panels can only be posted in a text channel.")

        await responder.defer(ephemeral=True)
        panel = self.store.load_panel(panel_id).value
        try:
            await channel.send(embed=panel_embed(panel), view=render_panel(panel, panel_id))
        except discord.Forbidden as exc:
            raise PermissionDeniedError() from exc
        await responder.resolve(embed=success_embed(f"Panel #{panel_id} posted."))


def register_ticket_commands(registry: CommandRegistry, router: InteractionRouter) -> None:
    registry.register("ticket open", router.command_ticket_open)
    registry.register("ticket close", router.command_ticket_close)
    registry.register("panel post", router.command_panel_post)
