from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from core.responder import Responder

LOGGER = logging.getLogger(__name__)

CommandHandler = Callable[["Responder", dict[str, Any]], Awaitable[None]]


class CommandRegistry:
    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}

    def register(self, name: str, handler: CommandHandler) -> None:
        key = name.strip().lower()
        if key in self:
            raise ValueError(f"Command already registered: {key}")
        self._handlers[key] = handler
        LOGGER.debug("Registered command handler: %s", key)

    def get(self, name: str) -> CommandHandler | None:
        return self._handlers.get(name.strip().lower())

    def names(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip().lower() in self._handlers
