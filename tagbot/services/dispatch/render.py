from typing import Iterable, Optional
from tagbot.schemas.recipients import Recipient

DEFAULT_SEPARATOR = " | "


def escape_html(value: Optional[str] = "") -> str:
    return (
        str(value or "")
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def display_name(recipient: Recipient) -> str:
    full = " ".join(
        part for part in (recipient.first_name, recipient.last_name) if part
    ).strip()
    if full:
        return full
    if recipient.username:
        return f"@{recipient.username}"
    return f"id:{recipient.user_id}"


def mention_html(recipient: Recipient) -> str:
    label = escape_html(display_name(recipient))
    return f'<a href="tg://user?id={recipient.user_id}">{label}</a>'


def team_label(slug: str) -> str:
    return slug[:1].upper() + slug[1:]


def render_batch(
    recipients: Iterable[Recipient],
    separator: str = DEFAULT_SEPARATOR,
    team: Optional[str] = None,
) -> str:
    text = separator.join(mention_html(r) for r in recipients)
    if team:
        text += f"\n{escape_html(team_label(team))}"
    return text
