import asyncio

import pytest
from sqlmodel import Session

from tagbot.errors import CooldownActive, DispatchRefusal, DispatchRefused, TransportError
from tagbot.models.common import ChatKind
from tagbot.repos.settings_repo import SettingsRepo
from tagbot.security.gate import AuthorizationGate, CooldownTracker
from tagbot.services.dispatch.parser import DispatchKind, DispatchRequest
from conftest import CHAT_ID

USAGE = "Usage: reply to a message with /tagall"


def make_request(chat_kind=ChatKind.supergroup, user_id=1, chat_id=CHAT_ID, target_message_id=5):
    return DispatchRequest(
        chat_id=chat_id,
        chat_kind=chat_kind,
        user_id=user_id,
        kind=DispatchKind.roster,
        command="tagall",
        target_message_id=target_message_id,
    )


@pytest.fixture
def gate(store, transport, clock):
    return AuthorizationGate(store, transport, CooldownTracker(60, clock=clock))


class TestCooldownTracker:
    def test_no_previous_run(self, clock):
        assert CooldownTracker(60, clock=clock).remaining(CHAT_ID) is None

    def test_remaining_is_rounded_up(self, clock):
        tracker = CooldownTracker(60, clock=clock)
        tracker.stamp(CHAT_ID)

        clock.advance(59)
        assert tracker.remaining(CHAT_ID) == 1

        clock.advance(-58.5)
        assert tracker.remaining(CHAT_ID) == 60

    def test_expires_after_cooldown(self, clock):
        tracker = CooldownTracker(60, clock=clock)
        tracker.stamp(CHAT_ID)

        clock.advance(60)

        assert tracker.remaining(CHAT_ID) is None

    def test_zero_cooldown_disables(self, clock):
        tracker = CooldownTracker(0, clock=clock)
        tracker.stamp(CHAT_ID)

        assert tracker.remaining(CHAT_ID) is None

    def test_chats_are_independent(self, clock):
        tracker = CooldownTracker(60, clock=clock)
        tracker.stamp("chat-a")

        assert tracker.remaining("chat-b") is None

    def test_instances_do_not_share_state(self, clock):
        first = CooldownTracker(60, clock=clock)
        first.stamp(CHAT_ID)

        assert CooldownTracker(60, clock=clock).remaining(CHAT_ID) is None


@pytest.mark.parametrize("kind", [ChatKind.private, ChatKind.channel])
def test_rejects_non_group_chats(gate, kind):
    with pytest.raises(DispatchRefused) as exc_info:
        asyncio.run(gate.authorize(make_request(chat_kind=kind), USAGE))

    assert exc_info.value.reason is DispatchRefusal.groups_only


def test_missing_target_refused_before_permission(gate, transport):
    transport.role_error = TransportError("must not be asked")

    with pytest.raises(DispatchRefused) as exc_info:
        asyncio.run(gate.authorize(make_request(user_id=2, target_message_id=None), USAGE))

    assert exc_info.value.reason is DispatchRefusal.no_target
    assert exc_info.value.message == USAGE


def test_group_check_comes_before_target(gate):
    request = make_request(chat_kind=ChatKind.private, target_message_id=None)

    with pytest.raises(DispatchRefused) as exc_info:
        asyncio.run(gate.authorize(request, USAGE))

    assert exc_info.value.reason is DispatchRefusal.groups_only


def test_admin_only_by_default(gate, transport):
    with pytest.raises(DispatchRefused) as exc_info:
        asyncio.run(gate.authorize(make_request(user_id=2), USAGE))

    assert exc_info.value.reason is DispatchRefusal.admins_only


@pytest.mark.parametrize("role", ["administrator", "creator"])
def test_admits_admins(gate, transport, role):
    transport.roles[1] = role

    asyncio.run(gate.authorize(make_request(user_id=1), USAGE))


def test_role_lookup_failure_is_not_admin(gate, transport):
    transport.role_error = TransportError("user not found")

    with pytest.raises(DispatchRefused) as exc_info:
        asyncio.run(gate.authorize(make_request(), USAGE))

    assert exc_info.value.reason is DispatchRefusal.admins_only


def test_open_chat_admits_members(gate, transport, db_session: Session):
    SettingsRepo().set_only_admins(db_session, CHAT_ID, False)

    asyncio.run(gate.authorize(make_request(user_id=2), USAGE))


def test_cooldown_after_admission(gate, transport, clock):
    transport.roles[1] = "administrator"
    request = make_request()

    asyncio.run(gate.authorize(request, USAGE))
    gate.admit(request)

    clock.advance(59)
    with pytest.raises(CooldownActive) as exc_info:
        asyncio.run(gate.authorize(request, USAGE))
    assert exc_info.value.remaining_seconds == 1
    assert "1 more sec" in exc_info.value.message

    clock.advance(1)
    asyncio.run(gate.authorize(request, USAGE))


def test_authorize_does_not_stamp(gate, transport):
    transport.roles[1] = "administrator"
    request = make_request()

    asyncio.run(gate.authorize(request, USAGE))
    asyncio.run(gate.authorize(request, USAGE))


def test_admit_refuses_while_cooling_down(gate):
    request = make_request()
    gate.admit(request)

    with pytest.raises(CooldownActive):
        gate.admit(request)
