"""
Ticket submission tests: size limits, attachment upload and insert.

Run with: pytest tests/test_submission.py -v
"""

import pytest

from conftest import make_ticket
from helpdesk.models.ticket import Attachment, CreateTicketData, TicketPriority
from helpdesk.tickets.errors import AuthenticationRequired, FileTooLarge, ValidationError
from helpdesk.tickets.submission import (
    check_attachment_sizes,
    submit_ticket,
    upload_attachments,
)
from helpdesk.tickets.view_state import TicketBoardProjection, TicketListProjection
from helpdesk.utils.constants import MIB


def attachment(name, size):
    return Attachment(filename=name, content=b"x" * size, content_type="application/octet-stream")


class TestSizeLimit:

    def test_under_limit_passes(self):
        check_attachment_sizes([attachment("a.png", 10), attachment("b.pdf", 10 * MIB)], limit=10 * MIB)

    def test_over_limit_names_the_file(self):
        with pytest.raises(FileTooLarge) as exc_info:
            check_attachment_sizes([attachment("ok.png", 5), attachment("big.mov", 11 * MIB)], limit=10 * MIB)

        error = exc_info.value
        assert error.filename == "big.mov"
        assert error.status_code == 413
        assert error.message == "File big.mov is too large. Maximum size is 10MB."

    def test_zero_limit_rejects_any_content(self):
        with pytest.raises(FileTooLarge) as exc_info:
            check_attachment_sizes([attachment("tiny.txt", 1)], limit=0)

        assert exc_info.value.filename == "tiny.txt"

    @pytest.mark.asyncio
    async def test_oversized_file_blocks_every_upload(self, mock_attachment_store):
        files = [attachment("small.png", 100), attachment("huge.zip", 11 * MIB)]

        with pytest.raises(FileTooLarge):
            await upload_attachments(mock_attachment_store, files, "user-1", limit=10 * MIB)

        mock_attachment_store.upload_many.assert_not_awaited()
        mock_attachment_store.upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_attachments_skips_store(self, mock_attachment_store):
        assert await upload_attachments(mock_attachment_store, [], "user-1") == []
        mock_attachment_store.upload_many.assert_not_awaited()


class TestSubmitTicket:

    @pytest.mark.asyncio
    async def test_insert_row(self, mock_repository, mock_attachment_store):
        mock_repository.insert_ticket.return_value = make_ticket("new", created=5)
        data = CreateTicketData(
            title="  Printer on fire ",
            description="  smoke everywhere ",
            priority=TicketPriority.HIGH,
            tags=["hardware", " hardware", ""],
        )

        ticket = await submit_ticket(mock_repository, mock_attachment_store, data)

        row = mock_repository.insert_ticket.await_args.args[0]
        assert row == {
            "title": "Printer on fire",
            "description": "smoke everywhere",
            "priority": TicketPriority.HIGH,
            "user_id": "user-1",
            "tags": ["hardware"],
        }
        assert "status" not in row
        assert ticket.id == "new"
        mock_attachment_store.upload_many.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_attachment_urls_are_stored(self, mock_repository, mock_attachment_store):
        mock_repository.insert_ticket.return_value = make_ticket("new")
        files = [attachment("screen.png", 100), attachment("log.txt", 50)]

        await submit_ticket(mock_repository, mock_attachment_store, CreateTicketData(title="Crash"), files)

        mock_attachment_store.upload_many.assert_awaited_once_with(files, "user-1")
        row = mock_repository.insert_ticket.await_args.args[0]
        assert row["attachments"] == [
            "https://cdn.example.com/ticket-attachments/user-1/screen.png",
            "https://cdn.example.com/ticket-attachments/user-1/log.txt",
        ]

    @pytest.mark.asyncio
    async def test_oversized_attachment_rejected_before_anything(self, mock_repository, mock_attachment_store):
        files = [attachment("huge.iso", 11 * MIB)]

        with pytest.raises(FileTooLarge):
            await submit_ticket(mock_repository, mock_attachment_store, CreateTicketData(title="Crash"), files)

        mock_repository.get_current_user.assert_not_awaited()
        mock_attachment_store.upload_many.assert_not_awaited()
        mock_repository.insert_ticket.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blank_title_rejected(self, mock_repository, mock_attachment_store):
        with pytest.raises(ValidationError):
            await submit_ticket(mock_repository, mock_attachment_store, CreateTicketData(title="   "))

        mock_repository.insert_ticket.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requires_signed_in_user(self, mock_repository, mock_attachment_store):
        mock_repository.get_current_user.return_value = None

        with pytest.raises(AuthenticationRequired):
            await submit_ticket(mock_repository, mock_attachment_store, CreateTicketData(title="Crash"))

        mock_repository.insert_ticket.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_new_ticket_placed_in_projections(self, mock_repository, mock_attachment_store):
        mock_repository.list_tickets.return_value = [make_ticket("old")]
        listing = TicketListProjection(mock_repository)
        board = TicketBoardProjection(mock_repository)
        await listing.load()
        await board.load()
        mock_repository.insert_ticket.return_value = make_ticket("new", created=5)

        await submit_ticket(
            mock_repository, mock_attachment_store, CreateTicketData(title="Crash"), projections=[listing, board]
        )

        assert [t.id for t in listing.tickets] == ["new", "old"]
        assert [t.id for t in board.column("open")] == ["new", "old"]


class TestCreateTicketData:

    def test_from_request(self):
        data = CreateTicketData.from_request({
            "title": " Login broken ",
            "description": "",
            "priority": "low",
            "tags": "auth,web",
            "status": "closed",
        })

        assert data.title == "Login broken"
        assert data.description is None
        assert data.priority == TicketPriority.LOW
        assert data.tags == ["auth", "web"]

    def test_default_priority(self):
        assert CreateTicketData.from_request({"title": "x"}).priority == TicketPriority.MEDIUM

    def test_invalid_priority(self):
        with pytest.raises(ValueError):
            CreateTicketData.from_request({"title": "x", "priority": "urgent"})

    @pytest.mark.parametrize("payload", [
        {"title": 123},
        {"title": "x", "description": ["a"]},
        {"title": "x", "tags": [1, 2]},
        {"title": "x", "tags": {"a": 1}},
    ])
    def test_non_text_fields_rejected(self, payload):
        with pytest.raises(ValueError):
            CreateTicketData.from_request(payload)
