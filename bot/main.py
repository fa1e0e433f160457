from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

import uvicorn

from core.api import create_api_app
from core.bot import TicketBot
from core.config import AppConfig, load_config
from core.logging import configure_logging

LOGGER = logging.getLogger("ticketpanel")

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "config" / "config.yaml"


def _api_server(bot: TicketBot, config: AppConfig) -> uvicorn.Server:
    return uvicorn.Server(
        uvicorn.Config(
            app=create_api_app(bot),
            host=config.fastapi.host,
            port=config.fastapi.port,
            log_level=config.logging.level.lower(),
            log_config=None,
        )
    )


async def run(config: AppConfig) -> None:
    async with TicketBot(config=config) as bot:
        server: uvicorn.Server | None = None
        server_task: asyncio.Task[None] | None = None
        if config.fastapi.enabled:
            server = _api_server(bot, config)
            server_task = asyncio.create_task(server.serve())
            LOGGER.info("Read-only API listening on %s:%s", config.fastapi.host, config.fastapi.port)
        try:
            await bot.start(config.discord.token)
        finally:
            if server is not None and server_task is not None:
                server.should_exit = True
                await server_task


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run the ticket panel bot.")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to config.yaml")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    configure_logging(config.logging)
    LOGGER.info("Starting with data directory %s", config.storage.data_directory)
    asyncio.run(run(config))


if __name__ == "__main__":
    main()
