from sqlmodel import Session
from tagbot.models.chat import ChatSettings


class SettingsRepo:
    def get_only_admins(self, session: Session, chat_id: str) -> bool:
        settings = session.get(ChatSettings, str(chat_id))
        if settings is None:
            return True
        return settings.tagall_only_admins

    def set_only_admins(self, session: Session, chat_id: str, only_admins: bool) -> ChatSettings:
        settings = session.get(ChatSettings, str(chat_id))
        if settings is None:
            settings = ChatSettings(chat_id=str(chat_id))
        settings.tagall_only_admins = only_admins
        session.add(settings)
        session.commit()
        session.refresh(settings)
        return settings
