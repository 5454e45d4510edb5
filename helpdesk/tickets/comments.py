import logging
from typing import List, Optional

from helpdesk.models.ticket import TicketComment
from helpdesk.tickets.errors import AuthenticationRequired, TicketError
from helpdesk.tickets.transitions import text_value

logger = logging.getLogger(__name__)


class CommentThread:
    """
    Comments for one ticket, oldest first.

    Fetched fresh every time a ticket's detail view opens; comments are not
    live-updated.
    """

    def __init__(self, repository, ticket_id: str):
        self.repository = repository
        self.ticket_id = ticket_id
        self.comments: List[TicketComment] = []

    async def load(self) -> List[TicketComment]:
        self.comments = await self.repository.list_comments(self.ticket_id)
        return list(self.comments)

    async def add_comment(self, body: str) -> Optional[TicketComment]:
        """
        Append a comment. Empty or whitespace-only bodies are ignored without
        touching the backend; None is returned in that case. A non-string body
        raises ValidationError.
        """
        body = text_value(body, "comment")
        if not body:
            return None

        try:
            user = await self.repository.get_current_user()
            if user is None:
                raise AuthenticationRequired()
            comment = await self.repository.insert_comment(self.ticket_id, user.id, body)
        except TicketError as e:
            logger.error(f"Failed to add comment to ticket {self.ticket_id}: {e}")
            raise

        self.comments.append(comment)
        return comment
