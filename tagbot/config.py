import os
from typing import Optional
from pydantic import BaseModel


def _int_env(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, value)


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() == "true"


def _database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    db_path = os.getenv("DB_PATH", "./members.db")
    return f"sqlite:///{db_path}"


class BotSettings(BaseModel):
    bot_token: Optional[str] = None
    database_url: str = "sqlite:///./members.db"
    db_echo: bool = False

    max_users: int = 100
    chunk_size: int = 20
    delay_ms: int = 1200
    cooldown_sec: int = 60
    tagall_command: str = "tagall"
    mention_separator: str = " | "

    admin_api_key: Optional[str] = None
    webhook_secret: Optional[str] = None

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0

    @classmethod
    def from_env(cls) -> "BotSettings":
        return cls(
            bot_token=os.getenv("BOT_TOKEN") or None,
            database_url=_database_url(),
            db_echo=_bool_env("DB_ECHO", False),
            max_users=_int_env("TAGALL_MAX_USERS", 100, 1),
            chunk_size=_int_env("TAGALL_CHUNK_SIZE", 20, 1),
            delay_ms=_int_env("TAGALL_DELAY_MS", 1200, 0),
            cooldown_sec=_int_env("TAGALL_COOLDOWN_SEC", 60, 0),
            tagall_command=(os.getenv("TAGALL_COMMAND") or "tagall").lower(),
            mention_separator=os.getenv("MENTION_SEPARATOR", " | "),
            admin_api_key=os.getenv("ADMIN_API_KEY") or None,
            webhook_secret=os.getenv("WEBHOOK_SECRET") or None,
        )
