from enum import Enum
from typing import Optional


class TagbotError(Exception):
    pass


class DispatchRefusal(str, Enum):
    groups_only = "groups_only"
    admins_only = "admins_only"
    cooldown = "cooldown"
    no_target = "no_target"
    no_members = "no_members"
    team_empty = "team_empty"


class DispatchRefused(TagbotError):
    """A dispatch was rejected before anything was sent.

    ``message`` is the text shown to the chat.
    """

    def __init__(self, reason: DispatchRefusal, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


class CooldownActive(DispatchRefused):
    def __init__(self, remaining_seconds: int, command: str):
        self.remaining_seconds = remaining_seconds
        super().__init__(
            DispatchRefusal.cooldown,
            f"Wait {remaining_seconds} more sec. before the next /{command}.",
        )


class TransportError(TagbotError):
    pass


class TransportThrottled(TransportError):
    def __init__(self, retry_after: float, message: Optional[str] = None):
        super().__init__(message or f"Throttled, retry after {retry_after}s")
        self.retry_after = retry_after


class DispatchFailed(TagbotError):
    def __init__(self, sent_batches: int, total_batches: int, cause: Exception):
        super().__init__(
            f"Dispatch aborted after {sent_batches}/{total_batches} batches: {cause}"
        )
        self.sent_batches = sent_batches
        self.total_batches = total_batches
        self.cause = cause


class TeamError(TagbotError):
    pass


class InvalidTeamSlug(TeamError):
    pass


class TeamExists(TeamError):
    pass


class TeamNotFound(TeamError):
    pass


class NotInRoster(TeamError):
    pass
