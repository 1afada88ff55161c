import pytest
from sqlmodel import Session

from tagbot.config import BotSettings
from tagbot.database import build_engine, create_db_and_tables
from tagbot.repos import MembersRepo
from tagbot.services.store import SqlRosterStore

CHAT_ID = "-100123"


class FakeTransport:
    """In-memory MessagingTransport.

    ``failures`` is consumed one entry per send attempt: an exception is
    raised, ``None`` lets the send through.
    """

    def __init__(self):
        self.attempts = []
        self.sent = []
        self.failures = []
        self.roles = {}
        self.role_error = None
        self.next_message_id = 500

    async def send_reply(self, chat_id, text, reply_to=None):
        self.attempts.append((chat_id, text, reply_to))
        if self.failures:
            failure = self.failures.pop(0)
            if failure is not None:
                raise failure
        self.sent.append((chat_id, text, reply_to))
        self.next_message_id += 1
        return self.next_message_id

    async def get_member_role(self, chat_id, user_id):
        if self.role_error is not None:
            raise self.role_error
        return self.roles.get(user_id, "member")

    async def get_administrators(self, chat_id):
        return {
            user_id
            for user_id, role in self.roles.items()
            if role in ("administrator", "creator")
        }

    async def get_chat_title(self, chat_id):
        return f"Chat {chat_id}"


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    def __init__(self, transport=None):
        self.calls = []
        self.transport = transport
        # number of sends completed when each sleep happened
        self.sent_at_call = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.transport is not None:
            self.sent_at_call.append(len(self.transport.sent))


@pytest.fixture
def test_engine():
    engine = build_engine("sqlite://")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(test_engine):
    with Session(test_engine) as session:
        yield session


@pytest.fixture
def store(test_engine):
    return SqlRosterStore(test_engine)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeper(transport):
    return RecordingSleep(transport)


@pytest.fixture
def settings():
    return BotSettings(
        database_url="sqlite://",
        max_users=100,
        chunk_size=20,
        delay_ms=1200,
        cooldown_sec=60,
    )


def seed_members(session: Session, chat_id: str, user_ids, is_bot: bool = False, offset: int = 0):
    """Record users in the given order; first-seen follows the iteration order."""
    repo = MembersRepo()
    for position, user_id in enumerate(user_ids):
        repo.upsert(
            session,
            chat_id,
            user_id,
            first_name=f"User{user_id}",
            is_bot=is_bot,
            seen_at=1_000_000 + offset + position,
        )
