"""create_roster_tables

Revision ID: 4c1e9a7d2f10
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4c1e9a7d2f10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "chat_members",
        sa.Column("chat_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("username", sa.String(), nullable=True),
        sa.Column("is_bot", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("first_seen", sa.BigInteger(), nullable=False),
        sa.Column("last_seen", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("chat_id", "user_id"),
    )
    op.create_index(
        "idx_chat_members_chat_first_seen", "chat_members", ["chat_id", "first_seen"]
    )

    op.create_table(
        "chat_settings",
        sa.Column("chat_id", sa.String(), nullable=False),
        sa.Column("tagall_only_admins", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_on", sa.DateTime(), nullable=False),
        sa.Column("updated_on", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("chat_id"),
    )

    op.create_table(
        "teams",
        sa.Column("chat_id", sa.String(), nullable=False),
        sa.Column("slug", sa.String(length=32), nullable=False),
        sa.Column("created_on", sa.DateTime(), nullable=False),
        sa.Column("updated_on", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("chat_id", "slug"),
    )

    op.create_table(
        "team_members",
        sa.Column("chat_id", sa.String(), nullable=False),
        sa.Column("slug", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("created_on", sa.DateTime(), nullable=False),
        sa.Column("updated_on", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["chat_id", "slug"],
            ["teams.chat_id", "teams.slug"],
            name="fk_team_members_team",
        ),
        sa.PrimaryKeyConstraint("chat_id", "slug", "user_id"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("team_members")
    op.drop_table("teams")
    op.drop_table("chat_settings")
    op.drop_index("idx_chat_members_chat_first_seen", "chat_members")
    op.drop_table("chat_members")
