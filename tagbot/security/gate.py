import math
import time
from typing import Callable, Dict, Optional

from tagbot.errors import CooldownActive, DispatchRefusal, DispatchRefused
from tagbot.security.permissions import is_chat_admin, is_group
from tagbot.services.dispatch.parser import DispatchRequest
from tagbot.services.store import RosterStore
from tagbot.services.transport import MessagingTransport


class CooldownTracker:
    """Last admitted dispatch per chat. Process-local, never persisted."""

    def __init__(self, cooldown_seconds: int = 60, clock: Callable[[], float] = time.monotonic):
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock
        self.last_run: Dict[str, float] = {}

    def remaining(self, chat_id: str) -> Optional[int]:
        if self.cooldown_seconds <= 0:
            return None
        last = self.last_run.get(str(chat_id))
        if last is None:
            return None
        elapsed = self.clock() - last
        if elapsed < self.cooldown_seconds:
            return math.ceil(self.cooldown_seconds - elapsed)
        return None

    def stamp(self, chat_id: str) -> None:
        self.last_run[str(chat_id)] = self.clock()


class AuthorizationGate:
    def __init__(
        self,
        store: RosterStore,
        transport: MessagingTransport,
        cooldowns: CooldownTracker,
    ):
        self.store = store
        self.transport = transport
        self.cooldowns = cooldowns

    def require_group(self, request: DispatchRequest) -> None:
        if not is_group(request.chat_kind):
            raise DispatchRefused(
                DispatchRefusal.groups_only, "This command only works in groups."
            )

    async def require_permission(self, request: DispatchRequest) -> None:
        if not self.store.get_only_admins(request.chat_id):
            return
        if not await is_chat_admin(self.transport, request.chat_id, request.user_id):
            raise DispatchRefused(
                DispatchRefusal.admins_only,
                f"⛔️ /{request.command} is available to group admins only.",
            )

    def check_cooldown(self, request: DispatchRequest) -> None:
        remaining = self.cooldowns.remaining(request.chat_id)
        if remaining is not None:
            raise CooldownActive(remaining, request.command)

    def require_target(self, request: DispatchRequest, usage: str) -> None:
        if request.target_message_id is None:
            raise DispatchRefused(DispatchRefusal.no_target, usage)

    async def authorize(self, request: DispatchRequest, usage: str) -> None:
        """Group, target, permission and cooldown checks, in that order.

        Does not stamp the cooldown; call ``admit`` once the dispatch is
        about to start sending.
        """
        self.require_group(request)
        self.require_target(request, usage)
        await self.require_permission(request)
        self.check_cooldown(request)

    def admit(self, request: DispatchRequest) -> None:
        self.check_cooldown(request)
        self.cooldowns.stamp(request.chat_id)
