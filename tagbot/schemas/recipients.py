from typing import Optional
from sqlmodel import SQLModel


class Recipient(SQLModel):
    user_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None


class TeamSummary(SQLModel):
    slug: str
    member_count: int
