import asyncio

import pytest

from tagbot.errors import DispatchRefused, TransportError
from tagbot.security.permissions import (
    is_admin_role,
    is_chat_admin,
    is_group,
    require_chat_admin,
)


@pytest.mark.parametrize(
    "kind,expected",
    [("group", True), ("supergroup", True), ("private", False), ("channel", False), ("sender", False)],
)
def test_is_group(kind, expected):
    assert is_group(kind) is expected


@pytest.mark.parametrize(
    "role,expected",
    [("creator", True), ("administrator", True), ("member", False), ("left", False), ("owner", False)],
)
def test_is_admin_role(role, expected):
    assert is_admin_role(role) is expected


def test_is_chat_admin_fails_closed(transport):
    transport.role_error = TransportError("Bad Request: user not found")

    assert asyncio.run(is_chat_admin(transport, "c", 1)) is False


def test_require_chat_admin(transport):
    transport.roles[1] = "creator"

    asyncio.run(require_chat_admin(transport, "c", 1))
    with pytest.raises(DispatchRefused):
        asyncio.run(require_chat_admin(transport, "c", 2))
