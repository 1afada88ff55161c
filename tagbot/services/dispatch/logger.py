import logging
from typing import Any

log = logging.getLogger("tagbot.dispatch")


def _format(chat_id: str, msg: str, data: dict[str, Any]) -> str:
    fields = " ".join(f"{key}={value}" for key, value in data.items())
    prefix = f"chat={chat_id} {msg}"
    return f"{prefix} {fields}" if fields else prefix


def log_info(chat_id: str, msg: str, **data) -> None:
    log.info(_format(chat_id, msg, data))


def log_warn(chat_id: str, msg: str, **data) -> None:
    log.warning(_format(chat_id, msg, data))


def log_error(chat_id: str, msg: str, exception: Exception = None, **data) -> None:
    if exception is not None:
        data["exception"] = {
            "type": type(exception).__name__,
            "message": str(exception),
        }

    log.error(_format(chat_id, msg, data), exc_info=exception)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every Bot API request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
