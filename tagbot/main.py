import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Request
from sqlalchemy.engine import Engine
from telegram import Update
from telegram.ext import Application

from tagbot.api.chats import router as chats_router
from tagbot.bot.application import build_application
from tagbot.config import BotSettings
from tagbot.database import build_engine, create_db_and_tables, ping
from tagbot.services.store import SqlRosterStore

log = logging.getLogger(__name__)


def create_app(
    settings: Optional[BotSettings] = None,
    engine: Optional[Engine] = None,
    telegram_app: Optional[Application] = None,
) -> FastAPI:
    settings = settings or BotSettings.from_env()
    engine = engine or build_engine(settings.database_url, settings.db_echo)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        create_db_and_tables(engine)
        if telegram_app is not None:
            await telegram_app.initialize()
            if telegram_app.post_init:
                await telegram_app.post_init(telegram_app)
            await telegram_app.start()
        try:
            yield
        finally:
            if telegram_app is not None:
                await telegram_app.stop()
                await telegram_app.shutdown()

    app = FastAPI(
        title="Tagbot",
        description="Group mention bot: health, Telegram webhook and admin API",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "Chats",
                "description": "Per-chat settings, roster and team management",
            },
            {
                "name": "Telegram",
                "description": "Webhook receiving Bot API updates",
            },
        ],
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.telegram = telegram_app

    app.include_router(chats_router)

    @app.get("/health")
    async def health_check():
        try:
            ping(app.state.engine)
        except Exception as e:
            log.error("database ping failed: %s", e)
            raise HTTPException(status_code=503, detail="database unavailable")
        return {"status": "healthy"}

    @app.post("/telegram/webhook", tags=["Telegram"])
    async def telegram_webhook(
        request: Request,
        secret_token: Optional[str] = Header(
            default=None, alias="X-Telegram-Bot-Api-Secret-Token"
        ),
    ):
        application = app.state.telegram
        if application is None:
            raise HTTPException(status_code=503, detail="Telegram application not configured")
        expected = app.state.settings.webhook_secret
        if expected and secret_token != expected:
            raise HTTPException(status_code=401, detail="Invalid webhook secret")

        update = Update.de_json(await request.json(), application.bot)
        await application.process_update(update)
        return {"ok": True}

    return app


def build_webhook_app() -> FastAPI:
    """App factory for ``uvicorn --factory tagbot.main:build_webhook_app``."""
    settings = BotSettings.from_env()
    engine = build_engine(settings.database_url, settings.db_echo)
    telegram_app = None
    if settings.bot_token:
        telegram_app = build_application(settings, SqlRosterStore(engine, settings.tagall_command))
    else:
        log.warning("BOT_TOKEN is not set; webhook endpoint is disabled")
    return create_app(settings, engine, telegram_app)
