from datetime import timedelta
from typing import Optional, Protocol, Set

from telegram import Bot, LinkPreviewOptions, ReplyParameters
from telegram.constants import ParseMode
from telegram.error import RetryAfter, TelegramError

from tagbot.errors import TransportError, TransportThrottled


class MessagingTransport(Protocol):
    async def send_reply(
        self, chat_id: str, text: str, reply_to: Optional[int] = None
    ) -> int:
        pass

    async def get_member_role(self, chat_id: str, user_id: int) -> str:
        pass

    async def get_administrators(self, chat_id: str) -> Set[int]:
        pass

    async def get_chat_title(self, chat_id: str) -> str:
        pass


def _retry_after_seconds(exc: RetryAfter) -> float:
    retry_after = exc.retry_after
    if isinstance(retry_after, timedelta):
        return retry_after.total_seconds()
    return float(retry_after)


class TelegramTransport:
    """MessagingTransport over a python-telegram-bot ``Bot``.

    Replies are sent as HTML with link previews off, and still go out when
    the message they answer has been deleted.
    """

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_reply(
        self, chat_id: str, text: str, reply_to: Optional[int] = None
    ) -> int:
        reply_parameters = None
        if reply_to is not None:
            reply_parameters = ReplyParameters(
                message_id=reply_to, allow_sending_without_reply=True
            )
        try:
            message = await self.bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode=ParseMode.HTML,
                link_preview_options=LinkPreviewOptions(is_disabled=True),
                reply_parameters=reply_parameters,
            )
        except RetryAfter as e:
            raise TransportThrottled(_retry_after_seconds(e), str(e)) from e
        except TelegramError as e:
            raise TransportError(str(e)) from e
        return message.message_id

    async def get_member_role(self, chat_id: str, user_id: int) -> str:
        try:
            member = await self.bot.get_chat_member(chat_id=chat_id, user_id=user_id)
        except TelegramError as e:
            raise TransportError(str(e)) from e
        return str(member.status)

    async def get_administrators(self, chat_id: str) -> Set[int]:
        try:
            admins = await self.bot.get_chat_administrators(chat_id=chat_id)
        except TelegramError as e:
            raise TransportError(str(e)) from e
        return {admin.user.id for admin in admins}

    async def get_chat_title(self, chat_id: str) -> str:
        try:
            chat = await self.bot.get_chat(chat_id=chat_id)
        except TelegramError as e:
            raise TransportError(str(e)) from e
        return chat.title or str(chat_id)
