"""
Database module for the helpdesk.

Provides the Supabase-backed collaborators the ticket core talks to.
"""

from helpdesk.database.supabase_client import (
    AsyncSupabaseClientSingleton,
    SupabaseClientSingleton,
)
from helpdesk.database.ticket_repository import TicketRepository
from helpdesk.database.attachment_store import AttachmentStore
from helpdesk.database.change_feed import ChangeEvent, ChangeFeed, ChangeKind, Subscription


__all__ = [
    'SupabaseClientSingleton',
    'AsyncSupabaseClientSingleton',
    'TicketRepository',
    'AttachmentStore',
    'ChangeFeed',
    'ChangeEvent',
    'ChangeKind',
    'Subscription',
]
