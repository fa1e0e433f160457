from __future__ import annotations

import json
import logging
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from conftest import STAFF_ROLE_ID, make_member, make_text_channel
from core.config import TranscriptConfig
from core.registry import CommandRegistry
from core.router import InteractionRouter, register_ticket_commands
from services.transcript_service import TranscriptService
from views.ticket_controls import CloseConfirmView
from views.ticket_forms import TicketFormModal

DROPDOWN_PANEL = {
    "mode": "dropdown",
    "title": "Help desk",
    "body": "Choose a reason",
    "options": [
        {"label": "General"},
        {"label": "Billing", "form": [{"id": "acct", "label": "Account", "required": True}]},
    ],
}


def _interaction(user, guild, *, data: dict[str, Any] | None = None, channel=None) -> MagicMock:
    interaction = MagicMock()
    interaction.user = user
    interaction.guild = guild
    interaction.channel = channel
    interaction.data = data or {}
    interaction.message = MagicMock()
    interaction.message.edit = AsyncMock()
    interaction.response.send_message = AsyncMock()
    interaction.response.edit_message = AsyncMock()
    interaction.response.send_modal = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.edit_original_response = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


def _initial_responses(interaction: MagicMock) -> int:
    response = interaction.response
    return (
        response.send_message.await_count
        + response.edit_message.await_count
        + response.send_modal.await_count
        + response.defer.await_count
    )


def _error_text(interaction: MagicMock) -> str:
    return interaction.response.send_message.await_args.kwargs["embed"].description


@pytest.fixture
def router(store, service, tmp_path) -> InteractionRouter:
    registry = CommandRegistry()
    transcripts = TranscriptService(TranscriptConfig(storage_directory=str(tmp_path / "transcripts")))
    instance = InteractionRouter(store=store, tickets=service, transcripts=transcripts, registry=registry)
    register_ticket_commands(registry, instance)
    return instance


@pytest.fixture
def dropdown_store(store):
    store.panel_path(1).write_text(json.dumps(DROPDOWN_PANEL), encoding="utf-8")
    return store


@pytest.mark.asyncio
async def test_dropdown_option_without_form_creates_ticket(router, dropdown_store, guild) -> None:
    member = make_member(999, "opener")
    member.guild = guild
    interaction = _interaction(member, guild, data={"custom_id": "panel1_reason", "values": ["opt_0"]})

    await router.handle(interaction)

    assert _initial_responses(interaction) == 1
    interaction.response.defer.assert_awaited_once_with(ephemeral=True, thinking=True)
    interaction.message.edit.assert_awaited_once()
    channel = guild.created_channels[0]
    assert "reason: General" in channel.created_with["topic"]
    result = interaction.edit_original_response.await_args.kwargs["embed"]
    assert f"<#{channel.id}>" in result.description


@pytest.mark.asyncio
async def test_dropdown_billing_form_flow(router, dropdown_store, guild) -> None:
    member = make_member(999, "opener")
    member.guild = guild

    select = _interaction(member, guild, data={"custom_id": "panel1_reason", "values": ["opt_1"]})
    await router.handle(select)

    assert _initial_responses(select) == 1
    modal = select.response.send_modal.await_args.args[0]
    assert isinstance(modal, TicketFormModal)
    assert modal.custom_id == "panel1_form_option_1"
    assert [item.custom_id for item in modal.children] == ["acct"]
    assert guild.created_channels == []

    submission = _interaction(
        member,
        guild,
        data={
            "custom_id": "panel1_form_option_1",
            "components": [{"type": 1, "components": [{"type": 4, "custom_id": "acct", "value": "12345"}]}],
        },
    )
    await router.handle(submission)

    assert _initial_responses(submission) == 1
    channel = guild.created_channels[0]
    summary = channel.send.await_args.kwargs["embed"]
    fields = {field.name: field.value for field in summary.fields}
    assert fields["Reason"] == "Billing"
    assert fields["Account"] == "12345"


@pytest.mark.asyncio
async def test_invalid_selection_is_reported(router, dropdown_store, guild) -> None:
    member = make_member(999)
    member.guild = guild
    interaction = _interaction(member, guild, data={"custom_id": "panel1_reason", "values": ["opt_9"]})

    await router.handle(interaction)

    assert _initial_responses(interaction) == 1
    assert "no longer available" in _error_text(interaction)
    assert guild.created_channels == []


@pytest.mark.asyncio
async def test_button_panel_uses_title_as_reason(router, store, guild) -> None:
    member = make_member(999)
    member.guild = guild
    interaction = _interaction(member, guild, data={"custom_id": "panel2_create"})

    await router.handle(interaction)

    assert _initial_responses(interaction) == 1
    assert "reason: Organizer Support" in guild.created_channels[0].created_with["topic"]


@pytest.mark.asyncio
async def test_missing_category_reports_configuration(router, store, guild) -> None:
    store.config_path.write_text("{}", encoding="utf-8")
    member = make_member(999)
    member.guild = guild
    interaction = _interaction(member, guild, data={"custom_id": "panel1_create"})

    await router.handle(interaction)

    assert _initial_responses(interaction) == 1
    message = interaction.edit_original_response.await_args.kwargs["embed"].description
    assert "Support category is not set" in message


@pytest.mark.asyncio
async def test_staff_group_member_claims_and_closes(router, guild) -> None:
    staff = make_member(5, "staff", role_ids=(STAFF_ROLE_ID,))
    channel = make_text_channel(800, guild, topic="opener:999")

    claim = _interaction(staff, guild, data={"custom_id": "ticket_claim"}, channel=channel)
    await router.handle(claim)
    assert _initial_responses(claim) == 1
    assert claim.response.send_message.await_args.kwargs["ephemeral"] is False

    close = _interaction(staff, guild, data={"custom_id": "ticket_close"}, channel=channel)
    await router.handle(close)
    assert _initial_responses(close) == 1
    assert isinstance(close.response.send_message.await_args.kwargs["view"], CloseConfirmView)

    confirm = _interaction(staff, guild, data={"custom_id": "ticket_confirm_close"}, channel=channel)
    await router.handle(confirm)
    assert _initial_responses(confirm) == 1
    record = await router.tickets.registry.get(800)
    assert record.status.value == "closed"
    assert record.claimed_by == [5]


@pytest.mark.asyncio
async def test_non_staff_claim_is_denied(router, guild) -> None:
    member = make_member(999)
    channel = make_text_channel(801, guild, topic="opener:999")
    interaction = _interaction(member, guild, data={"custom_id": "ticket_claim"}, channel=channel)

    await router.handle(interaction)

    assert _initial_responses(interaction) == 1
    assert "staff role" in _error_text(interaction)
    assert interaction.response.send_message.await_args.kwargs["ephemeral"] is True
    assert await router.tickets.registry.get(801) is None


@pytest.mark.asyncio
async def test_cancel_close_updates_prompt(router, guild) -> None:
    interaction = _interaction(make_member(5, manage=True), guild, data={"custom_id": "ticket_cancel_close"})

    await router.handle(interaction)

    assert _initial_responses(interaction) == 1
    assert interaction.response.edit_message.await_args.kwargs["view"] is None


@pytest.mark.asyncio
async def test_unknown_component_is_acknowledged(router, guild) -> None:
    interaction = _interaction(make_member(1), guild, data={"custom_id": "someone_elses_button"})

    await router.handle(interaction)

    assert _initial_responses(interaction) == 1
    interaction.response.defer.assert_awaited_once_with()


@pytest.mark.asyncio
async def test_unexpected_failure_gets_generic_message(router, guild) -> None:
    member = make_member(999)
    member.guild = guild
    router.tickets.create_ticket = AsyncMock(side_effect=RuntimeError("boom"))
    interaction = _interaction(member, guild, data={"custom_id": "panel1_create"})

    await router.handle(interaction)

    assert _initial_responses(interaction) == 1
    message = interaction.edit_original_response.await_args.kwargs["embed"].description
    assert message == "Something went wrong. Please try again."


@pytest.mark.asyncio
async def test_transcript_is_attached(router, guild) -> None:
    staff = make_member(5, manage=True)
    channel = make_text_channel(802, guild, topic="opener:999")

    async def history(**kwargs):
        if False:
            yield None

    channel.history = MagicMock(side_effect=lambda **kwargs: history(**kwargs))
    interaction = _interaction(staff, guild, data={"custom_id": "ticket_transcript"}, channel=channel)

    await router.handle(interaction)

    assert _initial_responses(interaction) == 1
    interaction.response.defer.assert_awaited_once_with(ephemeral=False, thinking=True)
    kwargs = interaction.edit_original_response.await_args.kwargs
    assert isinstance(kwargs["attachments"][0], discord.File)


@pytest.mark.asyncio
async def test_delete_survives_lost_reply(router, guild) -> None:
    staff = make_member(5, manage=True)
    channel = make_text_channel(803, guild, topic="opener:999")
    interaction = _interaction(staff, guild, data={"custom_id": "ticket_delete"}, channel=channel)
    interaction.edit_original_response.side_effect = discord.NotFound(MagicMock(status=404, reason="Not Found"), "gone")

    await router.handle(interaction)

    assert _initial_responses(interaction) == 1
    channel.delete.assert_awaited_once()
    interaction.followup.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_ticket_open_command_uses_default_subject(router, guild) -> None:
    member = make_member(999)
    member.guild = guild
    interaction = _interaction(member, guild)

    await router.invoke(interaction, "ticket open", subject="  ")

    assert _initial_responses(interaction) == 1
    assert "reason: no-subject" in guild.created_channels[0].created_with["topic"]


@pytest.mark.asyncio
async def test_ticket_close_command_outside_ticket(router, guild) -> None:
    member = make_member(5, manage=True)
    channel = make_text_channel(804, guild, topic=None)
    interaction = _interaction(member, guild, channel=channel)

    await router.invoke(interaction, "ticket close")

    assert _initial_responses(interaction) == 1
    assert "inside a ticket channel" in _error_text(interaction)


@pytest.mark.asyncio
async def test_panel_post_sends_rendered_panel(router, guild) -> None:
    member = make_member(5, manage=True)
    channel = make_text_channel(805, guild)
    interaction = _interaction(member, guild, channel=channel)

    await router.invoke(interaction, "panel post", number=2)

    assert _initial_responses(interaction) == 1
    view = channel.send.await_args.kwargs["view"]
    assert [item.custom_id for item in view.children] == ["panel2_create"]


@pytest.mark.asyncio
async def test_panel_post_requires_staff(router, guild) -> None:
    interaction = _interaction(make_member(999), guild, channel=make_text_channel(806, guild))

    await router.invoke(interaction, "panel post", number=1)

    assert _initial_responses(interaction) == 1
    assert "staff role" in _error_text(interaction)


@pytest.mark.asyncio
async def test_ticket_close_command_deletes_channel(router, guild) -> None:
    staff = make_member(5, "staff", role_ids=(STAFF_ROLE_ID,))
    channel = make_text_channel(807, guild, topic="opener:999")
    interaction = _interaction(staff, guild, channel=channel)

    await router.invoke(interaction, "ticket close")

    assert _initial_responses(interaction) == 1
    channel.delete.assert_awaited_once()
    assert await router.tickets.registry.get(807) is None


@pytest.mark.asyncio
async def test_ticket_close_command_reports_missing_permission(router, guild) -> None:
    staff = make_member(5, manage=True)
    channel = make_text_channel(808, guild, topic="opener:999")
    channel.delete.side_effect = discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Missing Permissions")
    interaction = _interaction(staff, guild, channel=channel)

    await router.invoke(interaction, "ticket close")

    assert _initial_responses(interaction) == 1
    message = interaction.edit_original_response.await_args.kwargs["embed"].description
    assert "Manage Channels" in message
    assert await router.tickets.registry.get(808) is not None


@pytest.mark.asyncio
async def test_ticket_close_command_requires_staff(router, guild) -> None:
    channel = make_text_channel(809, guild, topic="opener:999")
    interaction = _interaction(make_member(999), guild, channel=channel)

    await router.invoke(interaction, "ticket close")

    assert _initial_responses(interaction) == 1
    assert "staff role" in _error_text(interaction)
    channel.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_reopen_restores_opener(router, guild) -> None:
    opener = make_member(999, "opener")
    guild.get_member.return_value = opener
    staff = make_member(5, manage=True)
    channel = make_text_channel(810, guild, topic="opener:999")
    interaction = _interaction(staff, guild, data={"custom_id": "ticket_open"}, channel=channel)

    await router.handle(interaction)

    assert _initial_responses(interaction) == 1
    assert channel.set_permissions.await_args.args == (opener,)
    assert channel.set_permissions.await_args.kwargs["overwrite"].view_channel is True
    assert (await router.tickets.registry.get(810)).status.value == "open"


@pytest.mark.asyncio
async def test_button_form_flow(router, store, guild) -> None:
    store.panel_path(2).write_text(
        json.dumps({"mode": "button", "title": "Partnerships", "buttonForm": [{"id": "topic", "label": "Topic"}]}),
        encoding="utf-8",
    )
    member = make_member(999, "opener")
    member.guild = guild

    press = _interaction(member, guild, data={"custom_id": "panel2_create"})
    await router.handle(press)

    assert _initial_responses(press) == 1
    modal = press.response.send_modal.await_args.args[0]
    assert modal.custom_id == "panel2_form_button"
    assert guild.created_channels == []

    submission = _interaction(
        member,
        guild,
        data={
            "custom_id": "panel2_form_button",
            "components": [{"type": 1, "components": [{"type": 4, "custom_id": "topic", "value": "Sponsorship"}]}],
        },
    )
    await router.handle(submission)

    assert _initial_responses(submission) == 1
    channel = guild.created_channels[0]
    assert "reason: Partnerships" in channel.created_with["topic"]
    fields = {field.name: field.value for field in channel.send.await_args.kwargs["embed"].fields}
    assert fields["Topic"] == "Sponsorship"


@pytest.mark.asyncio
async def test_stale_option_form_submission_is_rejected(router, dropdown_store, guild) -> None:
    member = make_member(999)
    member.guild = guild
    interaction = _interaction(member, guild, data={"custom_id": "panel1_form_option_9", "components": []})

    await router.handle(interaction)

    assert _initial_responses(interaction) == 1
    assert "no longer available" in _error_text(interaction)
    assert guild.created_channels == []


@pytest.mark.asyncio
async def test_failed_panel_reset_is_logged_and_ignored(router, dropdown_store, guild, caplog) -> None:
    member = make_member(999)
    member.guild = guild
    interaction = _interaction(member, guild, data={"custom_id": "panel1_reason", "values": ["opt_0"]})
    interaction.message.edit.side_effect = discord.HTTPException(MagicMock(status=500, reason="Server Error"), "boom")

    with caplog.at_level(logging.WARNING, logger="core.router"):
        await router.handle(interaction)

    assert _initial_responses(interaction) == 1
    assert len(guild.created_channels) == 1
    reset_logs = [record for record in caplog.records if "Could not reset panel" in record.getMessage()]
    assert reset_logs and reset_logs[0].exc_info is not None
