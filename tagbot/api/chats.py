from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session

from tagbot.api.deps import get_db_session, get_teams_repo, require_api_key
from tagbot.errors import InvalidTeamSlug, NotInRoster, TeamExists, TeamNotFound
from tagbot.models.chat import ChatMember
from tagbot.repos import MembersRepo, SettingsRepo, TeamsRepo
from tagbot.schemas.admin import (
    ChatSettingsRead,
    ChatSettingsUpdate,
    MemberRead,
    TeamCreate,
    TeamMembersAdd,
    TeamMembersAddResult,
    TeamRead,
    TeamRename,
)
from tagbot.services.dispatch.render import display_name
from tagbot.services.store import to_recipient

router = APIRouter(
    prefix="/api/v1/chats/{chat_id}",
    tags=["Chats"],
    dependencies=[Depends(require_api_key)],
)

members_repo = MembersRepo()
settings_repo = SettingsRepo()
teams_repo = TeamsRepo()


def to_member_read(member: ChatMember) -> MemberRead:
    return MemberRead(
        user_id=member.user_id,
        first_name=member.first_name,
        last_name=member.last_name,
        username=member.username,
        display_name=display_name(to_recipient(member)),
    )


def resolve_slug(session: Session, chat_id: str, slug: str) -> str:
    stored = teams_repo.find_slug(session, chat_id, slug)
    if stored is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")
    return stored


@router.get("/settings", response_model=ChatSettingsRead)
def get_chat_settings(chat_id: str, session: Session = Depends(get_db_session)):
    return ChatSettingsRead(
        chat_id=chat_id,
        tagall_only_admins=settings_repo.get_only_admins(session, chat_id),
    )


@router.put("/settings", response_model=ChatSettingsRead)
def update_chat_settings(
    chat_id: str,
    settings_data: ChatSettingsUpdate,
    session: Session = Depends(get_db_session),
):
    settings = settings_repo.set_only_admins(session, chat_id, settings_data.tagall_only_admins)
    return ChatSettingsRead(chat_id=chat_id, tagall_only_admins=settings.tagall_only_admins)


@router.get("/members", response_model=List[MemberRead])
def list_roster(
    chat_id: str,
    limit: int = Query(100, ge=1, le=1000),
    session: Session = Depends(get_db_session),
):
    return [to_member_read(m) for m in members_repo.list_roster(session, chat_id, limit=limit)]


@router.get("/teams", response_model=List[TeamRead])
def list_teams(chat_id: str, session: Session = Depends(get_db_session)):
    return [
        TeamRead(chat_id=chat_id, slug=team.slug, member_count=team.member_count)
        for team in teams_repo.list_with_counts(session, chat_id)
    ]


@router.post("/teams", response_model=TeamRead, status_code=status.HTTP_201_CREATED)
def create_team(
    chat_id: str,
    team_data: TeamCreate,
    session: Session = Depends(get_db_session),
    teams: TeamsRepo = Depends(get_teams_repo),
):
    try:
        team = teams.create(session, chat_id, team_data.slug)
    except InvalidTeamSlug as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except TeamExists as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return TeamRead(chat_id=chat_id, slug=team.slug, member_count=0)


@router.patch("/teams/{slug}", response_model=TeamRead)
def rename_team(
    chat_id: str,
    slug: str,
    rename_data: TeamRename,
    session: Session = Depends(get_db_session),
    teams: TeamsRepo = Depends(get_teams_repo),
):
    stored = resolve_slug(session, chat_id, slug)
    try:
        team = teams.rename(session, chat_id, stored, rename_data.slug)
    except InvalidTeamSlug as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except TeamExists as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except TeamNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    member_count = len(teams_repo.list_members(session, chat_id, team.slug))
    return TeamRead(chat_id=chat_id, slug=team.slug, member_count=member_count)


@router.delete("/teams/{slug}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team(chat_id: str, slug: str, session: Session = Depends(get_db_session)):
    stored = resolve_slug(session, chat_id, slug)
    teams_repo.delete(session, chat_id, stored)


@router.get("/teams/{slug}/members", response_model=List[MemberRead])
def list_team_members(chat_id: str, slug: str, session: Session = Depends(get_db_session)):
    stored = resolve_slug(session, chat_id, slug)
    return [to_member_read(m) for m in teams_repo.list_removables(session, chat_id, stored)]


@router.get("/teams/{slug}/candidates", response_model=List[MemberRead])
def list_team_candidates(chat_id: str, slug: str, session: Session = Depends(get_db_session)):
    stored = resolve_slug(session, chat_id, slug)
    return [to_member_read(m) for m in teams_repo.list_candidates(session, chat_id, stored)]


@router.post("/teams/{slug}/members", response_model=TeamMembersAddResult)
def add_team_members(
    chat_id: str,
    slug: str,
    members_data: TeamMembersAdd,
    session: Session = Depends(get_db_session),
):
    stored = resolve_slug(session, chat_id, slug)
    added, skipped = [], []
    for user_id in members_data.user_ids:
        try:
            if teams_repo.add_member(session, chat_id, stored, user_id):
                added.append(user_id)
            else:
                skipped.append(user_id)
        except NotInRoster:
            skipped.append(user_id)
    return TeamMembersAddResult(added=added, skipped=skipped)


@router.delete("/teams/{slug}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_team_member(
    chat_id: str,
    slug: str,
    user_id: int,
    session: Session = Depends(get_db_session),
):
    stored = resolve_slug(session, chat_id, slug)
    if not teams_repo.remove_member(session, chat_id, stored, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User is not a member of this team",
        )
