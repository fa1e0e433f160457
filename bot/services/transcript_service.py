from __future__ import annotations

import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import discord

from core.config import TranscriptConfig

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class TranscriptArtifact:
    filename: str
    content: str
    message_count: int
    truncated: bool
    archive_path: Path | None = None

    def to_file(self) -> discord.File:
        return discord.File(io.BytesIO(self.content.encode("utf-8")), filename=self.filename)


class TranscriptService:
    def __init__(self, config: TranscriptConfig) -> None:
        self.config = config
        self.base_dir = Path(config.storage_directory)

    async def fetch_pages(self, channel: discord.TextChannel) -> tuple[list[list[discord.Message]], bool]:
        pages: list[list[discord.Message]] = []
        before: discord.Message | None = None
        for _ in range(self.config.max_pages):
            page = [message async for message in channel.history(limit=self.config.page_size, before=before)]
            if not page:
                return pages, False
            before = page[-1]
            page.reverse()
            pages.insert(0, page)
            if len(page) < self.config.page_size:
                return pages, False
        older = [message async for message in channel.history(limit=1, before=before)]
        return pages, bool(older)

    async def export(self, channel: discord.TextChannel) -> TranscriptArtifact:
        pages, truncated = await self.fetch_pages(channel)
        messages = [message for page in pages for message in page]
        lines = [f"Transcript for #{channel.name} ({channel.id})"]
        if truncated:
            lines.append(f"(truncated to the latest {len(messages)} messages)")
        lines.extend(self._build_lines(messages))

        artifact = TranscriptArtifact(
            filename=f"transcript-{channel.name}.txt",
            content="\n".join(lines),
            message_count=len(messages),
            truncated=truncated,
        )
        if self.config.archive_enabled:
            artifact.archive_path = self._archive(channel, artifact)
        LOGGER.info(
            "Exported transcript for channel %s (%s messages, truncated=%s)",
            channel.id,
            artifact.message_count,
            truncated,
        )
        return artifact

    def _archive(self, channel: discord.TextChannel, artifact: TranscriptArtifact) -> Path:
        guild_dir = self.base_dir / str(channel.guild.id)
        guild_dir.mkdir(parents=True, exist_ok=True)
        path = guild_dir / f"{channel.id}-{artifact.filename}"
        path.write_text(artifact.content, encoding="utf-8")
        return path

    @staticmethod
    def _build_lines(messages: Iterable[discord.Message]) -> list[str]:
        lines: list[str] = []
        for msg in messages:
            lines.append(f"[{msg.created_at.isoformat()}] {msg.author}: {msg.content or ''}")
            for attach in msg.attachments:
                lines.append(f"  attachment: {attach.filename} ({attach.url})")
        return lines
