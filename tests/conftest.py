# -*- coding: utf-8 -*-
"""
Shared test fixtures for the helpdesk test suite.

Centralizes the mock Supabase client, the AsyncMock ticket repository and
the ticket row factory used across the view-state, transition and API tests.
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, AsyncMock
from typing import Dict, Any

from helpdesk.database.change_feed import ChangeEvent, ChangeKind
from helpdesk.models.ticket import Ticket
from helpdesk.models.user import DirectoryUser, UserRole


BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def ts(minutes: int = 0) -> str:
    """ISO timestamp ``minutes`` after BASE_TIME."""
    return (BASE_TIME + timedelta(minutes=minutes)).isoformat()


def make_ticket_row(
    ticket_id: str,
    status: str = "open",
    user_id: str = "user-1",
    created: int = 0,
    updated: int = None,
    **extra,
) -> Dict[str, Any]:
    """A tickets row as PostgREST / realtime would deliver it."""
    row = {
        "id": ticket_id,
        "title": f"Ticket {ticket_id}",
        "description": None,
        "status": status,
        "priority": "medium",
        "created_at": ts(created),
        "updated_at": ts(created if updated is None else updated),
        "user_id": user_id,
        "assigned_to": None,
        "attachments": [],
        "tags": [],
    }
    row.update(extra)
    return row


def make_ticket(ticket_id: str, **kwargs) -> Ticket:
    return Ticket.from_dict(make_ticket_row(ticket_id, **kwargs))


def insert_event(row) -> ChangeEvent:
    return ChangeEvent(ChangeKind.INSERT, record=row)


def update_event(row, old=None) -> ChangeEvent:
    return ChangeEvent(ChangeKind.UPDATE, record=row, old_record=old or {"id": row["id"]})


def delete_event(ticket_id: str) -> ChangeEvent:
    return ChangeEvent(ChangeKind.DELETE, old_record={"id": ticket_id})


def make_user(user_id: str = "user-1", email: str = "user1@example.com") -> DirectoryUser:
    return DirectoryUser.from_auth_user({"id": user_id, "email": email})


# =============================================================================
# DATABASE MOCKS
# =============================================================================

def make_table_mock(data=None):
    """Create a chained-query mock table returning given data."""
    table = MagicMock()
    for method in [
        'select', 'eq', 'neq', 'lt', 'gt', 'gte', 'lte',
        'limit', 'order', 'is_', 'in_', 'insert', 'update',
    ]:
        getattr(table, method).return_value = table
    table.execute.return_value = MagicMock(data=data if data is not None else [])
    return table


@pytest.fixture
def mock_supabase():
    """Create a mock Supabase client with chained query support, one table mock per name."""
    mock = MagicMock()
    tables = {}

    def create_table_mock(table_name):
        if table_name not in tables:
            tables[table_name] = make_table_mock()
        return tables[table_name]

    mock.table = MagicMock(side_effect=create_table_mock)
    mock.tables = tables
    return mock


@pytest.fixture
def mock_repository():
    """AsyncMock ticket repository with a signed-in user-1 and no data."""
    repo = MagicMock()
    repo.list_tickets = AsyncMock(return_value=[])
    repo.get_ticket = AsyncMock()
    repo.insert_ticket = AsyncMock()
    repo.update_ticket = AsyncMock(return_value=None)
    repo.list_comments = AsyncMock(return_value=[])
    repo.insert_comment = AsyncMock()
    repo.get_current_user = AsyncMock(return_value=make_user())
    repo.get_user_role = AsyncMock(return_value=UserRole.USER)
    repo.list_all_users = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_attachment_store():
    store = MagicMock()
    store.upload = AsyncMock(return_value="https://cdn.example.com/ticket-attachments/user-1/file.png")
    store.upload_many = AsyncMock(side_effect=lambda files, owner: [
        f"https://cdn.example.com/ticket-attachments/{owner}/{f.filename}" for f in files
    ])
    return store
