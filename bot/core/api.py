from __future__ import annotations

from fastapi import FastAPI, Header, HTTPException

from core.bot import TicketBot
from views.ticket_panel import render_panel


def _auth(x_api_key: str | None, expected: str) -> None:
    if not expected:
        return
    if x_api_key != expected:
        raise HTTPException(status_code=401, detail="Unauthorized")


def create_api_app(bot: TicketBot) -> FastAPI:
    app = FastAPI(title="Ticket Panel Bot API", version="1.0.0")

    @app.get("/health")
    async def health() -> dict[str, object]:
        return {"status": "ok", "discord_ready": bot.is_ready()}

    @app.get("/panels/{panel_id}")
    async def panel(panel_id: int, x_api_key: str | None = Header(default=None)) -> dict[str, object]:
        _auth(x_api_key, bot.config.fastapi.api_key)
        if panel_id not in bot.config_store.panel_ids:
            raise HTTPException(status_code=404, detail="Unknown panel")
        result = bot.config_store.load_panel(panel_id)
        panel_cfg = result.value
        return {
            "panel_id": panel_id,
            "mode": panel_cfg.mode.value,
            "title": panel_cfg.title,
            "option_count": len(panel_cfg.options),
            "button_form_fields": len(panel_cfg.button_form),
            "problems": result.problems,
            "components": render_panel(panel_cfg, panel_id).to_components(),
        }

    @app.get("/tickets")
    async def tickets(x_api_key: str | None = Header(default=None)) -> dict[str, object]:
        _auth(x_api_key, bot.config.fastapi.api_key)
        records = await bot.ticket_registry.list_records()
        return {
            "items": [
                {
                    "channel_id": row.channel_id,
                    "guild_id": row.guild_id,
                    "opener_id": row.opener_id,
                    "reason": row.reason,
                    "status": row.status.value,
                    "claimed": row.is_claimed,
                    "claimed_by": row.claimed_by,
                    "created_at": row.created_at,
                }
                for row in records
            ]
        }

    return app
