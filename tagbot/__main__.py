import logging
import os
import sys

from tagbot.bot.application import build_application
from tagbot.config import BotSettings
from tagbot.database import build_engine, create_db_and_tables, ping
from tagbot.services.dispatch.logger import configure_logging
from tagbot.services.store import SqlRosterStore

log = logging.getLogger("tagbot")


def main() -> int:
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    settings = BotSettings.from_env()
    if not settings.bot_token:
        log.error("BOT_TOKEN is missing. Put it into the environment or .env")
        return 1

    engine = build_engine(settings.database_url, settings.db_echo)
    try:
        ping(engine)
    except Exception as e:
        log.error("Database unavailable: %s", e)
        return 1
    create_db_and_tables(engine)

    application = build_application(settings, SqlRosterStore(engine, settings.tagall_command))
    log.info("Bot started (polling)")
    application.run_polling()
    return 0


if __name__ == "__main__":
    sys.exit(main())
