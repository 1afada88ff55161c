import asyncio
import time
from typing import Awaitable, Callable

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    filters,
)

from tagbot.bot import handlers
from tagbot.bot.handlers import BotServices
from tagbot.config import BotSettings
from tagbot.services.dispatch.engine import build_mention_service
from tagbot.services.store import SqlRosterStore
from tagbot.services.transport import TelegramTransport

# Handler groups run in ascending order; every group gets a chance at each update.
OBSERVE_GROUP = -1
COMMAND_GROUP = 0
MENTION_GROUP = 1


def register_handlers(application: Application) -> None:
    application.add_handler(
        MessageHandler(filters.UpdateType.MESSAGE, handlers.observe_message),
        group=OBSERVE_GROUP,
    )

    application.add_handler(CommandHandler("start", handlers.start), group=COMMAND_GROUP)
    application.add_handler(CommandHandler("ping", handlers.ping_command), group=COMMAND_GROUP)
    application.add_handler(CommandHandler("admin", handlers.admin_command), group=COMMAND_GROUP)
    application.add_handler(CommandHandler("teams", handlers.teams_command), group=COMMAND_GROUP)
    application.add_handler(CommandHandler("team_new", handlers.team_new_command), group=COMMAND_GROUP)
    application.add_handler(CommandHandler("team_rename", handlers.team_rename_command), group=COMMAND_GROUP)
    application.add_handler(CommandHandler("team_delete", handlers.team_delete_command), group=COMMAND_GROUP)
    application.add_handler(CommandHandler("team_add", handlers.team_add_command), group=COMMAND_GROUP)
    application.add_handler(CommandHandler("team_remove", handlers.team_remove_command), group=COMMAND_GROUP)
    application.add_handler(
        CallbackQueryHandler(handlers.on_who_callback, pattern=handlers.WHO_CALLBACK_PATTERN),
        group=COMMAND_GROUP,
    )

    application.add_handler(
        MessageHandler(
            filters.UpdateType.MESSAGE & (filters.TEXT | filters.CAPTION),
            handlers.on_mention_command,
        ),
        group=MENTION_GROUP,
    )

    application.add_error_handler(handlers.on_error)


async def _post_init(application: Application) -> None:
    services: BotServices = application.bot_data["services"]
    services.mentions.parser.bot_username = application.bot.username


def build_application(
    settings: BotSettings,
    store: SqlRosterStore,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Application:
    if not settings.bot_token:
        raise ValueError("BOT_TOKEN environment variable is required")

    application = (
        Application.builder()
        .token(settings.bot_token)
        .concurrent_updates(True)
        .post_init(_post_init)
        .build()
    )
    transport = TelegramTransport(application.bot)
    application.bot_data["services"] = BotServices(
        settings=settings,
        store=store,
        transport=transport,
        mentions=build_mention_service(settings, store, transport, sleep=sleep, clock=clock),
    )
    register_handlers(application)
    return application
