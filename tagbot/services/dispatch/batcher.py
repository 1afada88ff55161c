import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from tagbot.errors import (
    DispatchFailed,
    DispatchRefusal,
    DispatchRefused,
    TransportThrottled,
)
from tagbot.schemas.recipients import Recipient
from tagbot.services.dispatch import logger
from tagbot.services.dispatch.render import DEFAULT_SEPARATOR, render_batch
from tagbot.services.transport import MessagingTransport

T = TypeVar("T")

THROTTLE_MARGIN_SECONDS = 1.0


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class SendStatus(str, Enum):
    sent = "sent"
    throttled = "throttled"
    fatal = "fatal"


@dataclass
class SendOutcome:
    status: SendStatus
    message_id: Optional[int] = None
    retry_after: float = 0.0
    error: Optional[Exception] = None


@dataclass
class DispatchResult:
    batches: int
    recipients: int
    message_ids: List[int] = field(default_factory=list)
    throttles: int = 0


class BatchDispatcher:
    """Sends recipients as consecutive reply batches, strictly in order.

    A throttled batch is retried in place after the advertised wait plus a
    one second margin; any other send failure aborts the rest of the
    dispatch. Batches already delivered stay delivered.
    """

    def __init__(
        self,
        transport: MessagingTransport,
        chunk_size: int = 20,
        delay_seconds: float = 1.2,
        separator: str = DEFAULT_SEPARATOR,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.transport = transport
        self.chunk_size = chunk_size
        self.delay_seconds = delay_seconds
        self.separator = separator
        self.sleep = sleep

    async def send_batch(
        self, chat_id: str, text: str, target_message_id: Optional[int]
    ) -> SendOutcome:
        try:
            message_id = await self.transport.send_reply(chat_id, text, target_message_id)
        except TransportThrottled as e:
            return SendOutcome(SendStatus.throttled, retry_after=e.retry_after, error=e)
        except Exception as e:
            return SendOutcome(SendStatus.fatal, error=e)
        return SendOutcome(SendStatus.sent, message_id=message_id)

    async def dispatch(
        self,
        chat_id: str,
        recipients: Sequence[Recipient],
        target_message_id: Optional[int],
        team: Optional[str] = None,
    ) -> DispatchResult:
        if not recipients:
            raise DispatchRefused(DispatchRefusal.no_members, "Nobody to mention.")

        batches = chunk(recipients, self.chunk_size)
        result = DispatchResult(batches=len(batches), recipients=len(recipients))

        for index, batch in enumerate(batches):
            text = render_batch(batch, self.separator, team=team)

            while True:
                outcome = await self.send_batch(chat_id, text, target_message_id)
                if outcome.status is SendStatus.sent:
                    result.message_ids.append(outcome.message_id)
                    break
                if outcome.status is SendStatus.throttled:
                    result.throttles += 1
                    logger.log_warn(
                        chat_id,
                        "rate limited",
                        batch=index + 1,
                        retry_after=outcome.retry_after,
                    )
                    await self.sleep(outcome.retry_after + THROTTLE_MARGIN_SECONDS)
                    continue
                raise DispatchFailed(index, len(batches), outcome.error)

            if index < len(batches) - 1:
                await self.sleep(self.delay_seconds)

        return result
