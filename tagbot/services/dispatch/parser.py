import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from tagbot.models.common import ChatKind
from tagbot.services.store import RosterStore

COMMAND_RE = re.compile(
    r"(?:^|(?<=\s))/(?P<word>[A-Za-z0-9_]{1,32})(?:@(?P<bot>[A-Za-z0-9_]+))?(?=\s|$)",
    re.IGNORECASE,
)


class DispatchKind(str, Enum):
    roster = "roster"
    team = "team"


@dataclass
class InboundMessage:
    chat_id: str
    chat_kind: ChatKind
    message_id: int
    user_id: int
    text: Optional[str] = None
    reply_to_message_id: Optional[int] = None
    has_media: bool = False


@dataclass
class CommandToken:
    word: str
    bot: Optional[str]
    residual: str


@dataclass
class DispatchRequest:
    chat_id: str
    chat_kind: ChatKind
    user_id: int
    kind: DispatchKind
    command: str
    target_message_id: Optional[int]
    slug: Optional[str] = None


def extract_command(text: Optional[str]) -> Optional[CommandToken]:
    if not text:
        return None
    match = COMMAND_RE.search(text)
    if not match:
        return None
    residual = (text[: match.start()] + text[match.end():]).strip()
    return CommandToken(word=match.group("word"), bot=match.group("bot"), residual=residual)


def resolve_target(message: InboundMessage, token: CommandToken) -> Optional[int]:
    if message.reply_to_message_id is not None:
        return message.reply_to_message_id
    if message.has_media or token.residual:
        return message.message_id
    return None


class CommandParser:
    """Classifies an inbound message as a roster or team mention command.

    Tokenizing is pure; deciding whether a non-reserved word is a team
    requires a case-insensitive slug lookup in the store.
    """

    def __init__(self, store: RosterStore, roster_command: str = "tagall", bot_username: Optional[str] = None):
        self.store = store
        self.roster_command = roster_command.lower()
        self.bot_username = bot_username

    def parse(self, message: InboundMessage) -> Optional[DispatchRequest]:
        token = extract_command(message.text)
        if token is None:
            return None
        if token.bot and self.bot_username and token.bot.lower() != self.bot_username.lower():
            return None

        word = token.word.lower()
        slug = None
        if word == self.roster_command:
            kind = DispatchKind.roster
        else:
            slug = self.store.find_team_slug(message.chat_id, word)
            if slug is None:
                return None
            kind = DispatchKind.team

        return DispatchRequest(
            chat_id=message.chat_id,
            chat_kind=message.chat_kind,
            user_id=message.user_id,
            kind=kind,
            command=word if kind is DispatchKind.roster else slug,
            target_message_id=resolve_target(message, token),
            slug=slug,
        )
