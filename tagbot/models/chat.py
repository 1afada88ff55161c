from typing import Optional
from sqlmodel import SQLModel, Field
from sqlalchemy import Index, BigInteger, Column
from .common import TimestampMixin


class ChatMember(SQLModel, table=True):
    __tablename__ = "chat_members"
    __table_args__ = (
        Index("idx_chat_members_chat_first_seen", "chat_id", "first_seen"),
    )

    chat_id: str = Field(primary_key=True)
    user_id: int = Field(sa_column=Column(BigInteger, primary_key=True))
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    is_bot: bool = Field(default=False, nullable=False)
    # epoch milliseconds
    first_seen: int = Field(sa_column=Column(BigInteger, nullable=False))
    last_seen: int = Field(sa_column=Column(BigInteger, nullable=False))


class ChatSettings(TimestampMixin, table=True):
    __tablename__ = "chat_settings"

    chat_id: str = Field(primary_key=True)
    tagall_only_admins: bool = Field(default=True, nullable=False)
