from typing import Optional, List
from sqlmodel import Session, select, func
from tagbot.models.chat import ChatMember
from tagbot.models.common import now_ms


class MembersRepo:
    def get(self, session: Session, chat_id: str, user_id: int) -> Optional[ChatMember]:
        return session.get(ChatMember, {"chat_id": str(chat_id), "user_id": user_id})

    def upsert(
        self,
        session: Session,
        chat_id: str,
        user_id: int,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        username: Optional[str] = None,
        is_bot: bool = False,
        seen_at: Optional[int] = None,
    ) -> ChatMember:
        """Record an observation of ``user_id`` in ``chat_id``.

        first_seen is written once; last_seen never moves backwards. Name
        fields and the bot flag always take the latest observed values.
        """
        seen_at = now_ms() if seen_at is None else seen_at
        member = self.get(session, chat_id, user_id)
        if member is None:
            member = ChatMember(
                chat_id=str(chat_id),
                user_id=user_id,
                first_seen=seen_at,
                last_seen=seen_at,
            )
        else:
            member.last_seen = max(member.last_seen, seen_at)

        member.first_name = first_name
        member.last_name = last_name
        member.username = username
        member.is_bot = bool(is_bot)

        session.add(member)
        session.commit()
        session.refresh(member)
        return member

    def list_roster(
        self,
        session: Session,
        chat_id: str,
        *,
        limit: Optional[int] = None,
        exclude_bots: bool = True,
    ) -> List[ChatMember]:
        statement = select(ChatMember).where(ChatMember.chat_id == str(chat_id))
        if exclude_bots:
            statement = statement.where(ChatMember.is_bot == False)  # noqa: E712
        statement = statement.order_by(ChatMember.first_seen, ChatMember.user_id)
        if limit is not None:
            statement = statement.limit(limit)
        return session.exec(statement).all()

    def find_by_username(
        self, session: Session, chat_id: str, username: str
    ) -> Optional[ChatMember]:
        statement = select(ChatMember).where(
            ChatMember.chat_id == str(chat_id),
            func.lower(ChatMember.username) == username.lstrip("@").lower(),
        )
        return session.exec(statement).first()
