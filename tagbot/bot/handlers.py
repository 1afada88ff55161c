import functools
import logging
from dataclasses import dataclass
from typing import List, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Message, Update, User
from telegram.error import BadRequest
from telegram.ext import ContextTypes

from tagbot.config import BotSettings
from tagbot.database import ping
from tagbot.errors import DispatchRefusal, DispatchRefused, NotInRoster, TagbotError, TeamNotFound
from tagbot.models.common import ChatKind
from tagbot.security.permissions import is_group, require_chat_admin
from tagbot.services.dispatch.engine import MentionService
from tagbot.services.dispatch.parser import InboundMessage
from tagbot.services.dispatch.render import display_name
from tagbot.services.store import SqlRosterStore, to_recipient
from tagbot.services.transport import TelegramTransport

log = logging.getLogger(__name__)

WHO_CALLBACK_PATTERN = r"^tagall_who:(admins|all)$"


@dataclass
class BotServices:
    settings: BotSettings
    store: SqlRosterStore
    transport: TelegramTransport
    mentions: MentionService


def get_services(context: ContextTypes.DEFAULT_TYPE) -> BotServices:
    return context.bot_data["services"]


def to_inbound(message: Message) -> InboundMessage:
    reply = message.reply_to_message
    # in forum topics every message replies to the topic's service message
    if reply is not None and reply.forum_topic_created is not None:
        reply = None
    has_media = any(
        (
            message.photo,
            message.video,
            message.document,
            message.audio,
            message.voice,
            message.video_note,
            message.sticker,
        )
    )
    return InboundMessage(
        chat_id=str(message.chat.id),
        chat_kind=ChatKind(message.chat.type),
        message_id=message.message_id,
        user_id=message.from_user.id if message.from_user else 0,
        text=message.text or message.caption,
        reply_to_message_id=reply.message_id if reply is not None else None,
        has_media=has_media,
    )


def command_boundary(handler):
    """Turns every failure inside a command handler into a chat reply."""

    @functools.wraps(handler)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE):
        message = update.effective_message
        try:
            return await handler(update, context)
        except DispatchRefused as e:
            await message.reply_text(e.message)
        except TagbotError as e:
            await message.reply_text(str(e))
        except Exception:
            log.exception("%s failed chat=%s", handler.__name__, update.effective_chat.id)
            await message.reply_text("❌ Something went wrong. Check the bot logs.")

    return wrapper


def record_user(store: SqlRosterStore, chat_id, user: Optional[User]) -> None:
    if not chat_id or user is None or not user.id:
        return
    store.record_member(
        str(chat_id),
        user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        username=user.username,
        is_bot=user.is_bot,
    )


async def observe_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.message
    if message is None or message.chat is None:
        return
    store = get_services(context).store
    record_user(store, message.chat.id, message.from_user)
    for joined in message.new_chat_members or ():
        record_user(store, message.chat.id, joined)


async def on_mention_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.message
    if message is None:
        return
    services = get_services(context)
    report = await services.mentions.handle(to_inbound(message))
    if report is not None and report.reply:
        await message.reply_text(report.reply)


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    command = get_services(context).settings.tagall_command
    await update.effective_message.reply_text(
        f"Ready. Reply to an important message with /{command}."
    )


async def ping_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    try:
        ping(get_services(context).store.engine)
    except Exception:
        log.exception("database ping failed")
        await update.effective_message.reply_text("Database error")
        return
    await update.effective_message.reply_text("OK")


def who_keyboard(only_admins: bool) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton(
                    "✓ Admins only" if only_admins else "Admins only",
                    callback_data="tagall_who:admins",
                ),
                InlineKeyboardButton(
                    "✓ All members" if not only_admins else "All members",
                    callback_data="tagall_who:all",
                ),
            ]
        ]
    )


async def require_group_admin(update: Update, services: BotServices) -> None:
    chat = update.effective_chat
    if not is_group(chat.type):
        raise DispatchRefused(DispatchRefusal.groups_only, "This command is for groups only.")
    await require_chat_admin(services.transport, str(chat.id), update.effective_user.id)


@command_boundary
async def admin_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    services = get_services(context)
    await require_group_admin(update, services)
    only_admins = services.store.get_only_admins(str(update.effective_chat.id))
    await update.effective_message.reply_text(
        f"Who can use /{services.settings.tagall_command}?",
        reply_markup=who_keyboard(only_admins),
    )


async def on_who_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    services = get_services(context)
    chat = update.effective_chat
    if chat is None:
        await query.answer("Error")
        return
    try:
        await require_chat_admin(services.transport, str(chat.id), query.from_user.id)
    except DispatchRefused:
        await query.answer("Only admins can change settings.")
        return

    who = context.match.group(1)
    only_admins = services.store.set_only_admins(str(chat.id), who == "admins")
    await query.answer()
    try:
        await query.edit_message_reply_markup(reply_markup=who_keyboard(only_admins))
    except BadRequest as e:
        # "message is not modified" when the same option is tapped twice
        log.debug("keyboard refresh skipped chat=%s: %s", chat.id, e)


# Team management


def _usage(text: str) -> TagbotError:
    return TagbotError(f"Usage: {text}")


@command_boundary
async def teams_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    services = get_services(context)
    await require_group_admin(update, services)
    chat_id = str(update.effective_chat.id)
    with services.store.session() as session:
        teams = services.store.teams.list_with_counts(session, chat_id)
    if not teams:
        await update.effective_message.reply_text(
            "No teams yet. Create one with /team_new <name>."
        )
        return
    lines = [f"/{team.slug} ({team.member_count})" for team in teams]
    await update.effective_message.reply_text("Teams:\n" + "\n".join(lines))


@command_boundary
async def team_new_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    services = get_services(context)
    await require_group_admin(update, services)
    if len(context.args) != 1:
        raise _usage("/team_new <name>")
    with services.store.session() as session:
        team = services.store.teams.create(session, str(update.effective_chat.id), context.args[0])
        slug = team.slug
    await update.effective_message.reply_text(
        f"Team {slug} created. Tag it with /{slug}, add people with /team_add {slug}."
    )


@command_boundary
async def team_rename_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    services = get_services(context)
    await require_group_admin(update, services)
    if len(context.args) != 2:
        raise _usage("/team_rename <old> <new>")
    chat_id = str(update.effective_chat.id)
    with services.store.session() as session:
        slug = _existing_slug(services, session, chat_id, context.args[0])
        renamed = services.store.teams.rename(session, chat_id, slug, context.args[1])
        new_slug = renamed.slug
    await update.effective_message.reply_text(f"Team {slug} renamed to {new_slug}.")


@command_boundary
async def team_delete_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    services = get_services(context)
    await require_group_admin(update, services)
    if len(context.args) != 1:
        raise _usage("/team_delete <name>")
    chat_id = str(update.effective_chat.id)
    with services.store.session() as session:
        slug = _existing_slug(services, session, chat_id, context.args[0])
        services.store.teams.delete(session, chat_id, slug)
    await update.effective_message.reply_text(f"Team {slug} deleted.")


def _existing_slug(services: BotServices, session, chat_id: str, name: str) -> str:
    slug = services.store.teams.find_slug(session, chat_id, name.lstrip("/"))
    if slug is None:
        raise TeamNotFound(f"Team '{name}' not found")
    return slug


def _referenced_user_ids(services: BotServices, session, chat_id: str, message: Message, usernames: List[str]) -> List[int]:
    user_ids = []
    if message.reply_to_message and message.reply_to_message.from_user:
        user_ids.append(message.reply_to_message.from_user.id)
    for username in usernames:
        member = services.store.members.find_by_username(session, chat_id, username)
        if member is None:
            raise NotInRoster(f"{username} has not been seen in this chat")
        user_ids.append(member.user_id)
    return user_ids


async def _change_membership(update: Update, context: ContextTypes.DEFAULT_TYPE, adding: bool) -> None:
    services = get_services(context)
    await require_group_admin(update, services)
    command = "team_add" if adding else "team_remove"
    if not context.args:
        raise _usage(f"/{command} <name> @user ... (or reply to a user's message)")

    chat_id = str(update.effective_chat.id)
    message = update.effective_message
    changed = []
    with services.store.session() as session:
        slug = _existing_slug(services, session, chat_id, context.args[0])
        user_ids = _referenced_user_ids(services, session, chat_id, message, context.args[1:])
        if not user_ids:
            raise _usage(f"/{command} {slug} @user ... (or reply to a user's message)")
        for user_id in user_ids:
            if adding:
                done = services.store.teams.add_member(session, chat_id, slug, user_id)
            else:
                done = services.store.teams.remove_member(session, chat_id, slug, user_id)
            if done:
                member = services.store.members.get(session, chat_id, user_id)
                changed.append(display_name(to_recipient(member)) if member else f"id:{user_id}")

    if not changed:
        await message.reply_text(f"Nothing changed in team {slug}.")
        return
    verb = "Added to" if adding else "Removed from"
    await message.reply_text(f"{verb} {slug}: {', '.join(changed)}")


@command_boundary
async def team_add_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _change_membership(update, context, adding=True)


@command_boundary
async def team_remove_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _change_membership(update, context, adding=False)


async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    log.error("update handling failed: %s", update, exc_info=context.error)
