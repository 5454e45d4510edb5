"""
Models package for the helpdesk.
"""

from helpdesk.models.base_model import BaseModel
from helpdesk.models.ticket import (
    Attachment,
    CreateTicketData,
    Ticket,
    TicketComment,
    TicketPriority,
    TicketStatus,
)
from helpdesk.models.user import DirectoryUser, UserRole

__all__ = [
    # Base
    'BaseModel',

    # Ticket models
    'Ticket',
    'TicketComment',
    'TicketStatus',
    'TicketPriority',
    'CreateTicketData',
    'Attachment',

    # User models
    'DirectoryUser',
    'UserRole',
]
