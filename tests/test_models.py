"""
Model and error kind tests.

Run with: pytest tests/test_models.py -v
"""

import pytest
from datetime import datetime

from conftest import make_ticket, make_ticket_row
from helpdesk.models.ticket import Ticket, TicketPriority, TicketStatus
from helpdesk.models.user import DirectoryUser, UserRole
from helpdesk.tickets.errors import AuthenticationRequired, FileTooLarge, TicketError, ValidationError


class TestTicket:

    def test_from_dict_parses_row(self):
        ticket = Ticket.from_dict(make_ticket_row(17, status="in_progress", priority="high"))

        assert ticket.id == "17"
        assert ticket.status == TicketStatus.IN_PROGRESS
        assert ticket.priority == TicketPriority.HIGH
        assert isinstance(ticket.updated_at, datetime)

    def test_from_dict_rejects_unknown_status(self):
        with pytest.raises(ValueError):
            Ticket.from_dict(make_ticket_row("1", status="archived"))

    def test_missing_priority_defaults_to_medium(self):
        assert Ticket.from_dict(make_ticket_row("1", priority=None)).priority == TicketPriority.MEDIUM

    def test_with_patch_leaves_original(self):
        ticket = make_ticket("1")

        patched = ticket.with_patch({"status": "closed", "tags": ("a",)})

        assert ticket.status == TicketStatus.OPEN
        assert patched.status == TicketStatus.CLOSED
        assert patched.tags == ["a"]

    def test_to_dict_round_values(self):
        data = make_ticket("1", status="closed").to_dict()

        assert data["status"] == "closed"
        assert data["priority"] == "medium"
        assert data["updated_at"].startswith("2024-05-01T12:00:00")

    def test_display_names(self):
        assert [s.display for s in TicketStatus] == ["Open", "In Progress", "Closed"]
        assert [p.display for p in TicketPriority] == ["Low", "Medium", "High"]


class TestUserRole:

    def test_staff(self):
        assert UserRole.ADMIN.is_staff
        assert UserRole.REVIEWER.is_staff
        assert not UserRole.USER.is_staff

    def test_directory_user_to_dict(self):
        user = DirectoryUser.from_auth_user({"id": "u1", "email": "a@example.com"})

        assert user.to_dict() == {"id": "u1", "email": "a@example.com"}


class TestErrors:

    def test_default_message(self):
        error = AuthenticationRequired()

        assert error.message == "User not authenticated"
        assert error.to_dict() == {"error": "User not authenticated", "code": "auth_required"}

    def test_file_too_large_is_validation_error(self):
        error = FileTooLarge("a.zip", 20 * 1024 * 1024, 10 * 1024 * 1024)

        assert isinstance(error, ValidationError)
        assert isinstance(error, TicketError)
        assert error.status_code == 413
