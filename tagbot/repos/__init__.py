from .members_repo import MembersRepo
from .settings_repo import SettingsRepo
from .teams_repo import TeamsRepo

__all__ = [
    "MembersRepo",
    "SettingsRepo",
    "TeamsRepo",
]
