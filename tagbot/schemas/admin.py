from typing import List, Optional
from sqlmodel import SQLModel


class ChatSettingsRead(SQLModel):
    chat_id: str
    tagall_only_admins: bool


class ChatSettingsUpdate(SQLModel):
    tagall_only_admins: bool


class TeamCreate(SQLModel):
    slug: str


class TeamRename(SQLModel):
    slug: str


class TeamRead(SQLModel):
    chat_id: str
    slug: str
    member_count: int = 0


class TeamMembersAdd(SQLModel):
    user_ids: List[int]


class TeamMembersAddResult(SQLModel):
    added: List[int]
    skipped: List[int]


class MemberRead(SQLModel):
    user_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    display_name: str
