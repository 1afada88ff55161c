from typing import List, Optional, Protocol
from sqlalchemy.engine import Engine
from sqlmodel import Session

from tagbot.models.chat import ChatMember
from tagbot.repos import MembersRepo, SettingsRepo, TeamsRepo
from tagbot.schemas.recipients import Recipient


class RosterStore(Protocol):
    def fetch_roster(self, chat_id: str, limit: int) -> List[Recipient]:
        pass

    def fetch_team_members(self, chat_id: str, slug: str) -> List[Recipient]:
        pass

    def find_team_slug(self, chat_id: str, name: str) -> Optional[str]:
        pass

    def get_only_admins(self, chat_id: str) -> bool:
        pass


def to_recipient(member: ChatMember) -> Recipient:
    return Recipient(
        user_id=member.user_id,
        first_name=member.first_name,
        last_name=member.last_name,
        username=member.username,
    )


class SqlRosterStore:
    """RosterStore backed by the SQL repositories, one session per call."""

    def __init__(self, engine: Engine, roster_command: str = "tagall"):
        self.engine = engine
        self.members = MembersRepo()
        self.teams = TeamsRepo(roster_command)
        self.settings = SettingsRepo()

    def session(self) -> Session:
        return Session(self.engine)

    def fetch_roster(self, chat_id: str, limit: int) -> List[Recipient]:
        with self.session() as session:
            rows = self.members.list_roster(session, chat_id, limit=limit)
            return [to_recipient(row) for row in rows]

    def fetch_team_members(self, chat_id: str, slug: str) -> List[Recipient]:
        with self.session() as session:
            rows = self.teams.list_members(session, chat_id, slug)
            return [to_recipient(row) for row in rows]

    def find_team_slug(self, chat_id: str, name: str) -> Optional[str]:
        with self.session() as session:
            return self.teams.find_slug(session, chat_id, name)

    def get_only_admins(self, chat_id: str) -> bool:
        with self.session() as session:
            return self.settings.get_only_admins(session, chat_id)

    def set_only_admins(self, chat_id: str, only_admins: bool) -> bool:
        with self.session() as session:
            return self.settings.set_only_admins(session, chat_id, only_admins).tagall_only_admins

    def record_member(
        self,
        chat_id: str,
        user_id: int,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        username: Optional[str] = None,
        is_bot: bool = False,
    ) -> None:
        with self.session() as session:
            self.members.upsert(
                session,
                chat_id,
                user_id,
                first_name=first_name,
                last_name=last_name,
                username=username,
                is_bot=is_bot,
            )
