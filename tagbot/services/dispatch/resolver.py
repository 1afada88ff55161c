from typing import List

from tagbot.errors import DispatchRefusal, DispatchRefused
from tagbot.schemas.recipients import Recipient
from tagbot.services.dispatch.parser import DispatchKind, DispatchRequest
from tagbot.services.store import RosterStore


class RecipientResolver:
    def __init__(self, store: RosterStore, max_users: int = 100):
        self.store = store
        self.max_users = max_users

    def resolve(self, request: DispatchRequest) -> List[Recipient]:
        """Ordered recipients for ``request``, first-seen ascending.

        Raises DispatchRefused when there is nobody to mention.
        """
        if request.kind is DispatchKind.roster:
            recipients = self.store.fetch_roster(request.chat_id, self.max_users)
            if not recipients:
                raise DispatchRefused(
                    DispatchRefusal.no_members,
                    "Nobody to mention yet: I have not collected any members in this chat.",
                )
            return recipients

        recipients = self.store.fetch_team_members(request.chat_id, request.slug)
        if not recipients:
            raise DispatchRefused(
                DispatchRefusal.team_empty,
                f"Team {request.slug} is empty. Add members with /team_add {request.slug}.",
            )
        return recipients
