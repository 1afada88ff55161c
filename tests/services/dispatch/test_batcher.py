import asyncio

import pytest

from tagbot.errors import DispatchFailed, DispatchRefused, TransportError, TransportThrottled
from tagbot.schemas.recipients import Recipient
from tagbot.services.dispatch.batcher import BatchDispatcher, SendStatus, chunk
from tagbot.services.dispatch.render import render_batch
from conftest import CHAT_ID


def recipients(count):
    return [Recipient(user_id=i, first_name=f"U{i}") for i in range(1, count + 1)]


def ids_in(text):
    return [int(part.split("id=")[1].split('"')[0]) for part in text.split(" | ")]


@pytest.fixture
def dispatcher(transport, sleeper):
    return BatchDispatcher(transport, chunk_size=20, delay_seconds=1.2, sleep=sleeper)


@pytest.mark.parametrize("count,size", [(45, 20), (40, 20), (1, 20), (7, 3), (5, 1)])
def test_chunk_reassembles_exactly(count, size):
    items = list(range(count))

    batches = chunk(items, size)

    assert [item for batch in batches for item in batch] == items
    assert all(len(batch) == size for batch in batches[:-1])
    assert 0 < len(batches[-1]) <= size


def test_chunk_rejects_zero_size():
    with pytest.raises(ValueError):
        chunk([1], 0)


def test_sends_45_members_in_three_batches(dispatcher, transport, sleeper):
    result = asyncio.run(dispatcher.dispatch(CHAT_ID, recipients(45), 77))

    assert result.batches == 3
    assert len(transport.sent) == 3
    assert [ids_in(text) for _, text, _ in transport.sent] == [
        list(range(1, 21)),
        list(range(21, 41)),
        list(range(41, 46)),
    ]
    assert all(reply_to == 77 for _, _, reply_to in transport.sent)
    # pacing after the first and second sends, none after the last
    assert sleeper.calls == [1.2, 1.2]
    assert sleeper.sent_at_call == [1, 2]


def test_single_batch_has_no_pacing(dispatcher, transport, sleeper):
    asyncio.run(dispatcher.dispatch(CHAT_ID, recipients(5), 77))

    assert len(transport.sent) == 1
    assert sleeper.calls == []


def test_empty_recipients_send_nothing(dispatcher, transport):
    with pytest.raises(DispatchRefused):
        asyncio.run(dispatcher.dispatch(CHAT_ID, [], 77))

    assert transport.attempts == []


def test_throttled_batch_is_retried_in_place(dispatcher, transport, sleeper):
    transport.failures = [None, TransportThrottled(5)]

    result = asyncio.run(dispatcher.dispatch(CHAT_ID, recipients(45), 77))

    assert result.throttles == 1
    assert len(transport.attempts) == 4
    assert transport.attempts[1] == transport.attempts[2]
    assert [ids_in(text) for _, text, _ in transport.sent] == [
        list(range(1, 21)),
        list(range(21, 41)),
        list(range(41, 46)),
    ]
    assert sleeper.calls == [1.2, 6.0, 1.2]


def test_repeated_throttle_keeps_retrying_same_batch(dispatcher, transport, sleeper):
    transport.failures = [TransportThrottled(1), TransportThrottled(2)]

    asyncio.run(dispatcher.dispatch(CHAT_ID, recipients(3), 77))

    assert len(transport.attempts) == 3
    assert len(transport.sent) == 1
    assert sleeper.calls == [2.0, 3.0]


def test_transport_error_aborts_and_keeps_sent_batches(dispatcher, transport):
    transport.failures = [None, TransportError("chat not found")]

    with pytest.raises(DispatchFailed) as exc_info:
        asyncio.run(dispatcher.dispatch(CHAT_ID, recipients(45), 77))

    assert exc_info.value.sent_batches == 1
    assert exc_info.value.total_batches == 3
    assert len(transport.sent) == 1
    assert len(transport.attempts) == 2


def test_team_label_on_every_batch(transport, sleeper):
    dispatcher = BatchDispatcher(transport, chunk_size=2, delay_seconds=0, sleep=sleeper)

    asyncio.run(dispatcher.dispatch(CHAT_ID, recipients(3), 77, team="friends"))

    assert all(text.endswith("\nFriends") for _, text, _ in transport.sent)


def test_send_batch_outcomes(dispatcher, transport):
    transport.failures = [TransportThrottled(3), RuntimeError("boom"), None]

    throttled = asyncio.run(dispatcher.send_batch(CHAT_ID, "x", 1))
    fatal = asyncio.run(dispatcher.send_batch(CHAT_ID, "x", 1))
    sent = asyncio.run(dispatcher.send_batch(CHAT_ID, "x", 1))

    assert throttled.status is SendStatus.throttled
    assert throttled.retry_after == 3
    assert fatal.status is SendStatus.fatal
    assert sent.status is SendStatus.sent
    assert sent.message_id == transport.next_message_id


def test_batch_text_matches_renderer(dispatcher, transport):
    people = recipients(2)

    asyncio.run(dispatcher.dispatch(CHAT_ID, people, 77))

    assert transport.sent[0][1] == render_batch(people)
