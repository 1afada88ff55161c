from sqlmodel import Session

from tagbot.repos.teams_repo import TeamsRepo
from tagbot.schemas.recipients import Recipient
from conftest import CHAT_ID, seed_members


def test_fetch_roster_returns_recipients(db_session: Session, store):
    seed_members(db_session, CHAT_ID, [2, 1])

    roster = store.fetch_roster(CHAT_ID, 10)

    assert roster == [
        Recipient(user_id=2, first_name="User2"),
        Recipient(user_id=1, first_name="User1"),
    ]


def test_fetch_team_members(db_session: Session, store):
    seed_members(db_session, CHAT_ID, [1, 2])
    teams = TeamsRepo()
    teams.create(db_session, CHAT_ID, "Ops")
    teams.add_member(db_session, CHAT_ID, "Ops", 2)

    assert [r.user_id for r in store.fetch_team_members(CHAT_ID, "Ops")] == [2]
    assert store.find_team_slug(CHAT_ID, "ops") == "Ops"


def test_only_admins_setting(store):
    assert store.get_only_admins(CHAT_ID) is True
    assert store.set_only_admins(CHAT_ID, False) is False
    assert store.get_only_admins(CHAT_ID) is False


def test_record_member_updates_roster(store):
    store.record_member(CHAT_ID, 5, first_name="Ann", username="ann")
    store.record_member(CHAT_ID, 6, first_name="Bot", is_bot=True)
    store.record_member(CHAT_ID, 5, first_name="Annie", username="ann")

    roster = store.fetch_roster(CHAT_ID, 10)

    assert [(r.user_id, r.first_name) for r in roster] == [(5, "Annie")]
