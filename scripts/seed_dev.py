#!/usr/bin/env python3
"""
Development database seeding script.
Creates a demo chat roster and team for local testing of the bot.
"""

import sys
from sqlmodel import Session
from tagbot.config import BotSettings
from tagbot.database import build_engine, create_db_and_tables
from tagbot.repos import MembersRepo, SettingsRepo, TeamsRepo

DEMO_CHAT_ID = "-1001000000000"

DEMO_USERS = [
    (1001, "Ann", "Lee", "ann"),
    (1002, "Bob", None, "bob"),
    (1003, None, None, "carol"),
    (1004, None, None, None),
]


def create_sample_data(engine):
    """Create sample data for development"""
    members = MembersRepo()
    teams = TeamsRepo()
    settings = SettingsRepo()

    with Session(engine) as session:
        print("🌱 Seeding development database...")

        if teams.find_slug(session, DEMO_CHAT_ID, "devs") is not None:
            print("✅ Demo data already exists, skipping seed")
            return

        for offset, (user_id, first_name, last_name, username) in enumerate(DEMO_USERS):
            members.upsert(
                session,
                DEMO_CHAT_ID,
                user_id,
                first_name=first_name,
                last_name=last_name,
                username=username,
                seen_at=1_700_000_000_000 + offset,
            )
        print(f"✅ Created {len(DEMO_USERS)} roster members in chat {DEMO_CHAT_ID}")

        team = teams.create(session, DEMO_CHAT_ID, "devs")
        for user_id, *_ in DEMO_USERS[:2]:
            teams.add_member(session, DEMO_CHAT_ID, team.slug, user_id)
        print(f"✅ Created team: {team.slug} with 2 members")

        settings.set_only_admins(session, DEMO_CHAT_ID, False)
        print("✅ Mentions open to all members in the demo chat")

        print("\n🎉 Database seeding completed successfully!")


if __name__ == "__main__":
    try:
        bot_settings = BotSettings.from_env()
        engine = build_engine(bot_settings.database_url, bot_settings.db_echo)
        create_db_and_tables(engine)
        create_sample_data(engine)
    except Exception as e:
        print(f"❌ Error seeding database: {e}")
        sys.exit(1)
