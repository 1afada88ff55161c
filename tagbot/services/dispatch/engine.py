import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from tagbot.config import BotSettings
from tagbot.errors import DispatchFailed, DispatchRefusal, DispatchRefused
from tagbot.security.gate import AuthorizationGate, CooldownTracker
from tagbot.services.dispatch import logger
from tagbot.services.dispatch.batcher import BatchDispatcher, DispatchResult
from tagbot.services.dispatch.parser import (
    CommandParser,
    DispatchKind,
    DispatchRequest,
    InboundMessage,
    extract_command,
)
from tagbot.services.dispatch.resolver import RecipientResolver
from tagbot.services.store import RosterStore
from tagbot.services.transport import MessagingTransport


@dataclass
class DispatchReport:
    request: Optional[DispatchRequest]
    result: Optional[DispatchResult] = None
    refusal: Optional[DispatchRefusal] = None
    reply: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


class MentionService:
    """End-to-end handling of one mention command.

    Every failure, classification included, ends up as ``DispatchReport.reply``,
    the text to post back into the chat.
    """

    def __init__(
        self,
        parser: CommandParser,
        gate: AuthorizationGate,
        resolver: RecipientResolver,
        dispatcher: BatchDispatcher,
    ):
        self.parser = parser
        self.gate = gate
        self.resolver = resolver
        self.dispatcher = dispatcher

    def usage(self, request: DispatchRequest) -> str:
        return (
            f"Usage: reply to an important message with /{request.command}, "
            f"or add text or media to the /{request.command} message itself."
        )

    async def handle(self, message: InboundMessage) -> Optional[DispatchReport]:
        try:
            request = self.parser.parse(message)
        except Exception as e:
            token = extract_command(message.text)
            command = token.word if token else "command"
            logger.log_error(message.chat_id, "dispatch error", exception=e, command=command)
            return DispatchReport(None, reply=self.failure_text(command))
        if request is None:
            return None

        try:
            await self.gate.authorize(request, self.usage(request))

            # no awaits between the cooldown check and admit()
            recipients = self.resolver.resolve(request)
            self.gate.admit(request)

            batches = -(-len(recipients) // self.dispatcher.chunk_size)
            logger.log_info(
                request.chat_id,
                "dispatch started",
                command=request.command,
                members=len(recipients),
                chunks=batches,
            )
            result = await self.dispatcher.dispatch(
                request.chat_id,
                recipients,
                request.target_message_id,
                team=request.slug if request.kind is DispatchKind.team else None,
            )
        except DispatchRefused as e:
            return DispatchReport(request, refusal=e.reason, reply=e.message)
        except DispatchFailed as e:
            logger.log_error(
                request.chat_id,
                "dispatch aborted",
                exception=e.cause,
                command=request.command,
                sent=e.sent_batches,
                total=e.total_batches,
            )
            return DispatchReport(request, reply=self.failure_text(request.command))
        except Exception as e:
            logger.log_error(
                request.chat_id, "dispatch error", exception=e, command=request.command
            )
            return DispatchReport(request, reply=self.failure_text(request.command))

        logger.log_info(
            request.chat_id,
            "dispatch finished",
            command=request.command,
            messages=len(result.message_ids),
            throttles=result.throttles,
        )
        return DispatchReport(request, result=result)

    def failure_text(self, command: str) -> str:
        return f"❌ /{command} failed. Check the bot logs."


def build_mention_service(
    settings: BotSettings,
    store: RosterStore,
    transport: MessagingTransport,
    bot_username: Optional[str] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> MentionService:
    cooldowns = CooldownTracker(settings.cooldown_sec, clock=clock)
    return MentionService(
        parser=CommandParser(store, settings.tagall_command, bot_username),
        gate=AuthorizationGate(store, transport, cooldowns),
        resolver=RecipientResolver(store, settings.max_users),
        dispatcher=BatchDispatcher(
            transport,
            chunk_size=settings.chunk_size,
            delay_seconds=settings.delay_seconds,
            separator=settings.mention_separator,
            sleep=sleep,
        ),
    )
