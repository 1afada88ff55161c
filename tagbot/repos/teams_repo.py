import re
from typing import Optional, List
from sqlmodel import Session, select, func
from tagbot.errors import InvalidTeamSlug, TeamExists, TeamNotFound, NotInRoster
from tagbot.models.chat import ChatMember
from tagbot.models.team import Team, TeamMember
from tagbot.schemas.recipients import TeamSummary

SLUG_RE = re.compile(r"^[A-Za-z0-9_]{1,32}$")

# bot commands a team slug must not shadow
RESERVED_SLUGS = frozenset(
    {
        "start",
        "ping",
        "admin",
        "teams",
        "team_new",
        "team_rename",
        "team_delete",
        "team_add",
        "team_remove",
    }
)


def validate_slug(slug: str, roster_command: str = "tagall") -> str:
    slug = (slug or "").strip().lstrip("/")
    if not SLUG_RE.match(slug):
        raise InvalidTeamSlug(
            f"Invalid team name '{slug}': use 1-32 letters, digits or underscores"
        )
    if slug.lower() in RESERVED_SLUGS or slug.lower() == roster_command.lower():
        raise InvalidTeamSlug(f"'{slug}' is a reserved command name")
    return slug


class TeamsRepo:
    def __init__(self, roster_command: str = "tagall"):
        self.roster_command = roster_command

    def get(self, session: Session, chat_id: str, slug: str) -> Optional[Team]:
        return session.get(Team, {"chat_id": str(chat_id), "slug": slug})

    def find_slug(self, session: Session, chat_id: str, name: str) -> Optional[str]:
        """Return the stored slug matching ``name`` case-insensitively."""
        statement = (
            select(Team.slug)
            .where(Team.chat_id == str(chat_id), func.lower(Team.slug) == name.lower())
            .order_by(Team.slug)
        )
        return session.exec(statement).first()

    def list(self, session: Session, chat_id: str) -> List[Team]:
        statement = select(Team).where(Team.chat_id == str(chat_id)).order_by(Team.slug)
        return session.exec(statement).all()

    def list_with_counts(self, session: Session, chat_id: str) -> List[TeamSummary]:
        statement = (
            select(Team.slug, func.count(TeamMember.user_id))
            .join(
                TeamMember,
                (TeamMember.chat_id == Team.chat_id) & (TeamMember.slug == Team.slug),
                isouter=True,
            )
            .where(Team.chat_id == str(chat_id))
            .group_by(Team.slug)
            .order_by(Team.slug)
        )
        return [
            TeamSummary(slug=slug, member_count=count)
            for slug, count in session.exec(statement).all()
        ]

    def create(self, session: Session, chat_id: str, slug: str) -> Team:
        slug = validate_slug(slug, self.roster_command)
        if self.find_slug(session, chat_id, slug) is not None:
            raise TeamExists(f"Team '{slug}' already exists")
        team = Team(chat_id=str(chat_id), slug=slug)
        session.add(team)
        session.commit()
        session.refresh(team)
        return team

    def rename(self, session: Session, chat_id: str, slug: str, new_slug: str) -> Team:
        new_slug = validate_slug(new_slug, self.roster_command)
        team = self.get(session, chat_id, slug)
        if team is None:
            raise TeamNotFound(f"Team '{slug}' not found")
        if new_slug == slug:
            return team

        clash = self.find_slug(session, chat_id, new_slug)
        if clash is not None and clash != slug:
            raise TeamExists(f"Team '{new_slug}' already exists")

        # Membership rows reference (chat_id, slug): insert the new team first,
        # move memberships, then drop the old row.
        renamed = Team(chat_id=str(chat_id), slug=new_slug, created_on=team.created_on)
        session.add(renamed)
        session.flush()
        memberships = session.exec(
            select(TeamMember).where(
                TeamMember.chat_id == str(chat_id), TeamMember.slug == slug
            )
        ).all()
        for membership in memberships:
            session.add(
                TeamMember(
                    chat_id=membership.chat_id,
                    slug=new_slug,
                    user_id=membership.user_id,
                    created_on=membership.created_on,
                )
            )
            session.delete(membership)
        session.flush()
        session.delete(team)
        session.commit()
        session.refresh(renamed)
        return renamed

    def delete(self, session: Session, chat_id: str, slug: str) -> bool:
        team = self.get(session, chat_id, slug)
        if not team:
            return False
        memberships = session.exec(
            select(TeamMember).where(
                TeamMember.chat_id == str(chat_id), TeamMember.slug == slug
            )
        ).all()
        for membership in memberships:
            session.delete(membership)
        session.flush()
        session.delete(team)
        session.commit()
        return True

    def add_member(self, session: Session, chat_id: str, slug: str, user_id: int) -> bool:
        """Add ``user_id`` to the team. Returns False when already a member."""
        if self.get(session, chat_id, slug) is None:
            raise TeamNotFound(f"Team '{slug}' not found")
        member = session.get(ChatMember, {"chat_id": str(chat_id), "user_id": user_id})
        if member is None:
            raise NotInRoster(f"User {user_id} has not been seen in this chat")
        if member.is_bot:
            raise NotInRoster(f"User {user_id} is a bot and cannot join teams")

        key = {"chat_id": str(chat_id), "slug": slug, "user_id": user_id}
        if session.get(TeamMember, key) is not None:
            return False
        session.add(TeamMember(**key))
        session.commit()
        return True

    def remove_member(self, session: Session, chat_id: str, slug: str, user_id: int) -> bool:
        membership = session.get(
            TeamMember, {"chat_id": str(chat_id), "slug": slug, "user_id": user_id}
        )
        if membership:
            session.delete(membership)
            session.commit()
            return True
        return False

    def list_members(self, session: Session, chat_id: str, slug: str) -> List[ChatMember]:
        statement = (
            select(ChatMember)
            .join(
                TeamMember,
                (TeamMember.chat_id == ChatMember.chat_id)
                & (TeamMember.user_id == ChatMember.user_id),
            )
            .where(
                TeamMember.chat_id == str(chat_id),
                TeamMember.slug == slug,
                ChatMember.is_bot == False,  # noqa: E712
            )
            .order_by(ChatMember.first_seen, ChatMember.user_id)
        )
        return session.exec(statement).all()

    def list_candidates(self, session: Session, chat_id: str, slug: str) -> List[ChatMember]:
        """Roster members (bots excluded) not yet in the team."""
        in_team = select(TeamMember.user_id).where(
            TeamMember.chat_id == str(chat_id), TeamMember.slug == slug
        )
        statement = (
            select(ChatMember)
            .where(
                ChatMember.chat_id == str(chat_id),
                ChatMember.is_bot == False,  # noqa: E712
                ChatMember.user_id.not_in(in_team),
            )
            .order_by(ChatMember.first_seen, ChatMember.user_id)
        )
        return session.exec(statement).all()

    def list_removables(self, session: Session, chat_id: str, slug: str) -> List[ChatMember]:
        return self.list_members(session, chat_id, slug)
