from .chat import ChatMember, ChatSettings
from .team import Team, TeamMember

__all__ = [
    "ChatMember",
    "ChatSettings",
    "Team",
    "TeamMember",
]
