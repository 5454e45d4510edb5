import copy
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field

from helpdesk.models.base_model import BaseModel, parse_timestamp


class TicketStatus(str, Enum):
    """Kanban column a ticket sits in. Any status may move to any other."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"

    @property
    def display(self) -> str:
        match self:
            case TicketStatus.OPEN:
                return "Open"
            case TicketStatus.IN_PROGRESS:
                return "In Progress"
            case TicketStatus.CLOSED:
                return "Closed"
        raise ValueError(f"Unhandled ticket status: {self!r}")


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def display(self) -> str:
        match self:
            case TicketPriority.LOW:
                return "Low"
            case TicketPriority.MEDIUM:
                return "Medium"
            case TicketPriority.HIGH:
                return "High"
        raise ValueError(f"Unhandled ticket priority: {self!r}")


class Ticket(BaseModel):
    """
    Represents a support ticket.
    Maps to the tickets table.
    """

    def __init__(self):
        self.id: str = None
        self.title: str = None
        self.description: Optional[str] = None
        self.status: TicketStatus = TicketStatus.OPEN
        self.priority: TicketPriority = TicketPriority.MEDIUM
        self.created_at: Optional[datetime] = None
        self.updated_at: Optional[datetime] = None
        self.user_id: str = None
        self.assigned_to: Optional[str] = None
        self.attachments: List[str] = []
        self.tags: List[str] = []

    @property
    def is_unassigned(self) -> bool:
        return not self.assigned_to

    def copy(self) -> "Ticket":
        """Independent copy; projections never share ticket instances."""
        return copy.deepcopy(self)

    def with_patch(self, patch: Dict[str, Any]) -> "Ticket":
        """Return a copy with the given fields replaced."""
        patched = self.copy()
        patched._assign_fields(patch)
        return patched

    def _assign_fields(self, data: Dict[str, Any]) -> None:
        for key, value in data.items():
            if not hasattr(self, key):
                continue
            if key == "id" and value is not None:
                value = str(value)
            elif key == "status":
                value = TicketStatus(value)
            elif key == "priority":
                value = TicketPriority(value) if value else TicketPriority.MEDIUM
            elif key in ("attachments", "tags"):
                value = list(value or [])
            elif key.endswith("_at"):
                value = parse_timestamp(value)
            setattr(self, key, value)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ticket":
        """
        Create Ticket object from a tickets row.

        Raises ValueError when status or priority is not one of the known values.
        """
        if not data:
            return None
        ticket = cls()
        ticket._assign_fields(data)
        return ticket


class TicketComment(BaseModel):
    """
    A comment on a ticket. Maps to the ticket_comments table.
    Comments are append-only.
    """

    def __init__(self):
        self.id: str = None
        self.ticket_id: str = None
        self.user_id: str = None
        self.comment: str = None
        self.created_at: Optional[datetime] = None


@dataclass
class CreateTicketData:
    """Fields a user supplies when filing a ticket."""
    title: str
    description: Optional[str] = None
    priority: TicketPriority = TicketPriority.MEDIUM
    tags: List[str] = field(default_factory=list)

    @classmethod
    def from_request(cls, data: Dict[str, Any]) -> "CreateTicketData":
        priority = data.get('priority') or TicketPriority.MEDIUM.value
        tags = data.get('tags') or []
        if isinstance(tags, str):
            tags = tags.split(',')
        elif not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
            raise ValueError("tags must be a list of strings")
        return cls(
            title=_text_field(data, 'title'),
            description=_text_field(data, 'description') or None,
            priority=TicketPriority(priority),
            tags=list(tags),
        )


def _text_field(data: Dict[str, Any], name: str) -> str:
    value = data.get(name) or ''
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    return value.strip()


@dataclass
class Attachment:
    """A file picked by the user, held in memory until uploaded."""
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        if '.' not in self.filename:
            return 'bin'
        return self.filename.rsplit('.', 1)[-1].lower()
