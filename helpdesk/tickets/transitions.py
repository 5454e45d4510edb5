"""
Status/Assignment Transition Logic.

Every change follows the same commit path:

1. stamp the patch with a fresh ``updated_at``;
2. apply it optimistically to every registered projection;
3. persist it through the repository;
4. on failure, log, roll the projections back and re-raise.

There is no workflow: any status can move to any other status, including
itself. Assignment is not checked against the user directory; an unknown id
simply renders as "Unknown User".
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from helpdesk.models.ticket import TicketPriority, TicketStatus
from helpdesk.tickets.errors import TicketError, ValidationError

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "priority", "tags")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def text_value(value: Any, name: str) -> str:
    """Stripped string value; None reads as empty."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value.strip()


def coerce_status(value: Any) -> TicketStatus:
    try:
        return TicketStatus(value)
    except ValueError:
        valid = [s.value for s in TicketStatus]
        raise ValidationError(f"Invalid status. Must be one of: {valid}")


@dataclass(frozen=True)
class BoardPosition:
    """Where a card sits on the kanban board."""
    column: TicketStatus
    index: int

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["BoardPosition"]:
        if not data:
            return None
        try:
            return cls(column=coerce_status(data.get("column")), index=int(data.get("index", 0)))
        except (AttributeError, TypeError, ValueError):
            raise ValidationError(f"Invalid board position: {data!r}")


class TicketTransitions:
    def __init__(self, repository, projections: Iterable = ()):
        self.repository = repository
        self.projections: List = list(projections)

    def register(self, projection) -> None:
        if projection not in self.projections:
            self.projections.append(projection)

    def unregister(self, projection) -> None:
        if projection in self.projections:
            self.projections.remove(projection)

    async def _commit(self, ticket_id: str, patch: Dict[str, Any], action: str) -> Dict[str, Any]:
        patch = dict(patch)
        patch["updated_at"] = utcnow()

        pending = []
        for projection in self.projections:
            mutation = projection.apply_local_mutation(ticket_id, patch)
            if mutation is not None:
                pending.append((projection, mutation))

        try:
            await self.repository.update_ticket(ticket_id, patch)
        except TicketError as e:
            logger.error(f"Failed to {action} ticket {ticket_id}: {e}")
            for projection, mutation in pending:
                projection.rollback(mutation)
            raise

        logger.info(f"Ticket {ticket_id}: {action} persisted")
        return patch

    async def change_status(self, ticket_id: str, new_status) -> Dict[str, Any]:
        """Move a ticket to ``new_status``. Returns the persisted patch."""
        status = coerce_status(new_status)
        return await self._commit(ticket_id, {"status": status}, f"set status to {status.value}")

    async def assign(self, ticket_id: str, user_id: Optional[str]) -> Dict[str, Any]:
        """Assign a ticket; None (or empty) clears the assignment."""
        if user_id is not None and not isinstance(user_id, str):
            raise ValidationError("assigned_to must be a user id or null")
        return await self._commit(ticket_id, {"assigned_to": user_id or None}, "assign")

    async def edit(self, ticket_id: str, **fields) -> Dict[str, Any]:
        """Edit title, description, priority or tags."""
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {sorted(unknown)}")
        if not fields:
            raise ValidationError("Nothing to update")

        patch = dict(fields)
        if "title" in patch:
            patch["title"] = text_value(patch["title"], "title")
            if not patch["title"]:
                raise ValidationError("Title is required")
        if "description" in patch:
            patch["description"] = text_value(patch["description"], "description") or None
        if "priority" in patch:
            try:
                patch["priority"] = TicketPriority(patch["priority"])
            except ValueError:
                raise ValidationError(f"Invalid priority: {patch['priority']!r}")
        if "tags" in patch:
            patch["tags"] = normalize_tags(patch["tags"] or [])

        return await self._commit(ticket_id, patch, "edit")

    async def handle_drop(
        self,
        ticket_id: str,
        source: BoardPosition,
        destination: Optional[BoardPosition],
    ) -> bool:
        """
        Kanban drag-and-drop. Returns True when a status change was issued.

        Dropping outside a column, or back onto the exact spot the card came
        from, does nothing.
        """
        if destination is None:
            return False
        if destination == source:
            return False

        await self.change_status(ticket_id, destination.column)
        return True


def normalize_tags(tags: Iterable[str]) -> List[str]:
    """Trim, drop empties and de-duplicate, keeping first-seen order."""
    if isinstance(tags, str):
        tags = tags.split(",")
    elif not isinstance(tags, (list, tuple)):
        raise ValidationError("tags must be a list of strings")
    seen = []
    for tag in tags:
        tag = text_value(tag, "tag")
        if tag and tag not in seen:
            seen.append(tag)
    return seen
