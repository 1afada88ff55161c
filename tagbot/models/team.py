from sqlmodel import Field
from sqlalchemy import BigInteger, Column, ForeignKeyConstraint
from .common import TimestampMixin


class Team(TimestampMixin, table=True):
    __tablename__ = "teams"

    chat_id: str = Field(primary_key=True)
    slug: str = Field(primary_key=True, max_length=32)


class TeamMember(TimestampMixin, table=True):
    __tablename__ = "team_members"
    __table_args__ = (
        ForeignKeyConstraint(
            ["chat_id", "slug"],
            ["teams.chat_id", "teams.slug"],
            name="fk_team_members_team",
        ),
    )

    chat_id: str = Field(primary_key=True)
    slug: str = Field(primary_key=True, max_length=32)
    user_id: int = Field(sa_column=Column(BigInteger, primary_key=True))
