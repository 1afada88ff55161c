import logging

from tagbot.errors import DispatchRefusal, DispatchRefused, TransportError
from tagbot.models.common import ADMIN_ROLES, GROUP_KINDS, ChatKind, ChatRole
from tagbot.services.transport import MessagingTransport

log = logging.getLogger(__name__)


def is_group(chat_kind) -> bool:
    try:
        return ChatKind(chat_kind) in GROUP_KINDS
    except ValueError:
        return False


def is_admin_role(role) -> bool:
    try:
        return ChatRole(role) in ADMIN_ROLES
    except ValueError:
        return False


async def is_chat_admin(transport: MessagingTransport, chat_id: str, user_id: int) -> bool:
    # Lookup failures count as "not admin".
    try:
        role = await transport.get_member_role(chat_id, user_id)
    except TransportError as e:
        log.warning("get_member_role failed chat=%s user=%s: %s", chat_id, user_id, e)
        return False
    return is_admin_role(role)


async def require_chat_admin(
    transport: MessagingTransport,
    chat_id: str,
    user_id: int,
    message: str = "⛔️ Only group admins can change settings.",
) -> None:
    if not await is_chat_admin(transport, chat_id, user_id):
        raise DispatchRefused(DispatchRefusal.admins_only, message)
