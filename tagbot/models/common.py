import time
from datetime import datetime, timezone
from enum import Enum
from sqlmodel import SQLModel, Field
from sqlalchemy import event


class ChatRole(str, Enum):
    creator = "creator"
    administrator = "administrator"
    member = "member"
    restricted = "restricted"
    left = "left"
    kicked = "kicked"


class ChatKind(str, Enum):
    private = "private"
    group = "group"
    supergroup = "supergroup"
    channel = "channel"


ADMIN_ROLES = frozenset({ChatRole.creator, ChatRole.administrator})
GROUP_KINDS = frozenset({ChatKind.group, ChatKind.supergroup})


def utc_now():
    return datetime.now(timezone.utc)


def now_ms() -> int:
    return int(time.time() * 1000)


class TimestampMixin(SQLModel):
    created_on: datetime = Field(default_factory=utc_now, nullable=False)
    updated_on: datetime = Field(default_factory=utc_now, nullable=False)


@event.listens_for(TimestampMixin, "before_update", propagate=True)
def update_timestamp(mapper, connection, target):
    target.updated_on = datetime.now(timezone.utc)
