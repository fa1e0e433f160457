"""Consume-once wrapper around an interaction's initial response.

Discord accepts exactly one initial response per interaction. Every handler
talks to the interaction through a ``Responder`` so a second attempt raises
``ResponseAlreadyUsedError`` instead of failing at the API.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

import discord

from core.errors import ResponseAlreadyUsedError
from utils.embeds import error_embed

LOGGER = logging.getLogger(__name__)


class ResponseState(StrEnum):
    UNUSED = "unused"
    DEFERRED = "deferred"
    DONE = "done"


def _payload(
    content: str | None = None,
    embed: discord.Embed | None = None,
    view: discord.ui.View | None = None,
) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    if content is not None:
        kwargs["content"] = content
    if embed is not None:
        kwargs["embed"] = embed
    if view is not None:
        kwargs["view"] = view
    return kwargs


class Responder:
    def __init__(self, interaction: discord.Interaction) -> None:
        self.interaction = interaction
        self.state = ResponseState.UNUSED

    @property
    def used(self) -> bool:
        return self.state is not ResponseState.UNUSED

    def _consume(self, action: str, next_state: ResponseState = ResponseState.DONE) -> None:
        if self.used:
            raise ResponseAlreadyUsedError(f"Cannot {action}: initial response already {self.state.value}")
        self.state = next_state

    async def reply(
        self,
        content: str | None = None,
        *,
        embed: discord.Embed | None = None,
        view: discord.ui.View | None = None,
        ephemeral: bool = True,
    ) -> None:
        self._consume("reply")
        await self.interaction.response.send_message(
            ephemeral=ephemeral, **_payload(content, embed, view)
        )

    async def update(
        self,
        content: str | None = None,
        *,
        embed: discord.Embed | None = None,
        view: discord.ui.View | None = None,
    ) -> None:
        self._consume("update")
        kwargs = _payload(content, embed, view)
        if view is None:
            kwargs["view"] = None
        await self.interaction.response.edit_message(**kwargs)

    async def modal(self, modal: discord.ui.Modal) -> None:
        self._consume("open a modal")
        await self.interaction.response.send_modal(modal)

    async def defer(self, *, ephemeral: bool = True) -> None:
        self._consume("defer", ResponseState.DEFERRED)
        await self.interaction.response.defer(ephemeral=ephemeral, thinking=True)

    async def acknowledge(self) -> None:
        self._consume("acknowledge")
        await self.interaction.response.defer()

    async def resolve(
        self,
        content: str | None = None,
        *,
        embed: discord.Embed | None = None,
        view: discord.ui.View | None = None,
        file: discord.File | None = None,
    ) -> None:
        if self.state is not ResponseState.DEFERRED:
            raise ResponseAlreadyUsedError(f"Cannot resolve: response is {self.state.value}, not deferred")
        self.state = ResponseState.DONE
        kwargs = _payload(content, embed, view)
        if file is not None:
            kwargs["attachments"] = [file]
        await self.interaction.edit_original_response(**kwargs)

    async def follow_up(
        self,
        content: str | None = None,
        *,
        embed: discord.Embed | None = None,
        ephemeral: bool = True,
    ) -> None:
        if self.state is ResponseState.UNUSED:
            raise ResponseAlreadyUsedError("Cannot follow up before the initial response")
        await self.interaction.followup.send(ephemeral=ephemeral, **_payload(content, embed))

    async def fail(self, message: str) -> None:
        embed = error_embed(message)
        if self.state is ResponseState.UNUSED:
            await self.reply(embed=embed, ephemeral=True)
        elif self.state is ResponseState.DEFERRED:
            await self.resolve(embed=embed)
        else:
            await self.follow_up(embed=embed, ephemeral=True)

    async def finish(self) -> None:
        if self.state is ResponseState.UNUSED:
            LOGGER.warning("Handler returned without responding; acknowledging silently")
            await self.acknowledge()
        elif self.state is ResponseState.DEFERRED:
            LOGGER.warning("Handler left a deferred response pending; resolving it")
            await self.resolve(content="Done.")
