"""
Ticket Repository - typed access to the tickets, ticket_comments and
user_roles tables plus the auth user directory.

Every method is a coroutine. The Supabase SDK is blocking, so each
``execute()`` is pushed to the default executor; callers get a real
suspension point at every backend round-trip.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List

from postgrest import APIError

from helpdesk.database.supabase_client import SupabaseClientSingleton
from helpdesk.models.ticket import Ticket, TicketComment, TicketStatus
from helpdesk.models.user import DirectoryUser, UserRole
from helpdesk.tickets.errors import (
    NotFound,
    PermissionDenied,
    TicketError,
    TransportError,
)

logger = logging.getLogger(__name__)

# PostgREST / Postgres error codes
NO_ROWS_CODE = "PGRST116"
INSUFFICIENT_PRIVILEGE_CODE = "42501"


class TicketRepository:
    """
    Repository for ticket, comment and role queries.

    The access token identifies the end user for ``get_current_user``;
    the client itself is usually the service-role singleton.
    """

    TICKETS_TABLE = "tickets"
    COMMENTS_TABLE = "ticket_comments"
    ROLES_TABLE = "user_roles"

    def __init__(self, supabase_client=None, access_token: Optional[str] = None):
        """
        Initialize Ticket Repository.

        Args:
            supabase_client: Optional Supabase client (defaults to singleton)
            access_token: JWT of the user on whose behalf calls are made
        """
        self.supabase = supabase_client or SupabaseClientSingleton.get_instance()
        self.access_token = access_token

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func, *args)
        except APIError as e:
            raise self._translate(e) from e
        except TicketError:
            raise
        except Exception as e:
            raise TransportError(str(e)) from e

    async def _execute(self, query):
        result = await self._run(query.execute)
        return result.data or []

    @staticmethod
    def _translate(error: APIError) -> TicketError:
        code = getattr(error, "code", None)
        message = getattr(error, "message", None) or str(error)
        if code == NO_ROWS_CODE:
            return NotFound(message)
        if code == INSUFFICIENT_PRIVILEGE_CODE:
            return PermissionDenied(message)
        return TransportError(message)

    # =========================================================================
    # Tickets
    # =========================================================================

    async def list_tickets(self, owner_id: Optional[str] = None) -> List[Ticket]:
        """All tickets (optionally only those owned by ``owner_id``), newest first."""
        query = self.supabase.table(self.TICKETS_TABLE).select("*")
        if owner_id:
            query = query.eq("user_id", owner_id)
        rows = await self._execute(query.order("created_at", desc=True))

        tickets = []
        for row in rows:
            try:
                tickets.append(Ticket.from_dict(row))
            except ValueError as e:
                logger.warning(f"Skipping malformed ticket row {row.get('id')}: {e}")

        logger.debug(f"Listed {len(tickets)} tickets (owner={owner_id})")
        return tickets

    async def get_ticket(self, ticket_id: str) -> Ticket:
        rows = await self._execute(
            self.supabase.table(self.TICKETS_TABLE).select("*").eq("id", ticket_id).limit(1)
        )
        if not rows:
            raise NotFound(f"Ticket {ticket_id} not found")
        return Ticket.from_dict(rows[0])

    async def insert_ticket(self, data: Dict[str, Any]) -> Ticket:
        """Insert a ticket row. The status is always written as open."""
        row = _serialize(data)
        row["status"] = TicketStatus.OPEN.value

        rows = await self._execute(self.supabase.table(self.TICKETS_TABLE).insert(row))
        if not rows:
            raise TransportError("Failed to create ticket")

        ticket = Ticket.from_dict(rows[0])
        logger.info(f"Created ticket {ticket.id} for user {ticket.user_id}")
        return ticket

    async def update_ticket(self, ticket_id: str, patch: Dict[str, Any]) -> None:
        """
        Apply a partial update.

        Raises NotFound when no row was changed, which is also what row-level
        security produces for a row the caller may not touch.
        """
        rows = await self._execute(
            self.supabase.table(self.TICKETS_TABLE).update(_serialize(patch)).eq("id", ticket_id)
        )
        if not rows:
            raise NotFound(f"Ticket {ticket_id} not found")

    # =========================================================================
    # Comments
    # =========================================================================

    async def list_comments(self, ticket_id: str) -> List[TicketComment]:
        rows = await self._execute(
            self.supabase.table(self.COMMENTS_TABLE)
            .select("*")
            .eq("ticket_id", ticket_id)
            .order("created_at")
        )
        return [TicketComment.from_dict(row) for row in rows]

    async def insert_comment(self, ticket_id: str, user_id: str, body: str) -> TicketComment:
        rows = await self._execute(
            self.supabase.table(self.COMMENTS_TABLE).insert({
                "ticket_id": ticket_id,
                "user_id": user_id,
                "comment": body,
            })
        )
        if not rows:
            raise TransportError("Failed to add comment")
        return TicketComment.from_dict(rows[0])

    # =========================================================================
    # Users and roles
    # =========================================================================

    async def get_current_user(self) -> Optional[DirectoryUser]:
        """The user behind the access token, or None when unauthenticated."""
        if not self.access_token:
            return None

        try:
            response = await self._run(self.supabase.auth.get_user, self.access_token)
        except TicketError as e:
            logger.debug(f"Access token rejected: {e}")
            return None

        user = getattr(response, "user", None)
        if not user:
            return None
        return DirectoryUser.from_auth_user(user)

    async def get_user_role(self, user_id: str) -> UserRole:
        """Role record for ``user_id``. Raises NotFound when the user has none."""
        rows = await self._execute(
            self.supabase.table(self.ROLES_TABLE).select("role").eq("user_id", user_id).limit(1)
        )
        if not rows:
            raise NotFound(f"No role record for user {user_id}")
        return UserRole(rows[0]["role"])

    async def list_all_users(self) -> List[DirectoryUser]:
        """
        Every user in the auth directory.

        Privileged: needs the service-role key. Any failure is reported as
        PermissionDenied so callers can fall back to no directory.
        """
        try:
            users = await self._run(self.supabase.auth.admin.list_users)
        except TicketError as e:
            raise PermissionDenied(f"Could not list users: {e}") from e

        return [DirectoryUser.from_auth_user(user) for user in (users or [])]


def _serialize(patch: Dict[str, Any]) -> Dict[str, Any]:
    """Make a patch JSON-ready (enums to values, datetimes to ISO strings)."""
    data = {}
    for key, value in patch.items():
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        data[key] = value
    return data
