"""
Comment Thread Tests.

Run with: pytest tests/test_comments.py -v
"""

import pytest

from conftest import ts
from helpdesk.models.ticket import TicketComment
from helpdesk.tickets.comments import CommentThread
from helpdesk.tickets.errors import AuthenticationRequired, PermissionDenied, ValidationError


def make_comment(comment_id, body, minutes=0):
    return TicketComment.from_dict({
        "id": comment_id,
        "ticket_id": "t-1",
        "user_id": "user-1",
        "comment": body,
        "created_at": ts(minutes),
    })


class TestCommentThread:

    @pytest.mark.asyncio
    async def test_load_returns_comments_oldest_first(self, mock_repository):
        mock_repository.list_comments.return_value = [make_comment("c1", "first"), make_comment("c2", "second", 1)]
        thread = CommentThread(mock_repository, "t-1")

        comments = await thread.load()

        mock_repository.list_comments.assert_awaited_once_with("t-1")
        assert [c.comment for c in comments] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_blank_comment_never_reaches_backend(self, mock_repository):
        thread = CommentThread(mock_repository, "t-1")

        for body in ["", "   ", "\n\t", None]:
            assert await thread.add_comment(body) is None

        mock_repository.get_current_user.assert_not_awaited()
        mock_repository.insert_comment.assert_not_awaited()
        assert thread.comments == []

    @pytest.mark.asyncio
    async def test_non_text_comment_is_rejected(self, mock_repository):
        thread = CommentThread(mock_repository, "t-1")

        with pytest.raises(ValidationError):
            await thread.add_comment(5)

        mock_repository.insert_comment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_add_comment_trims_and_appends(self, mock_repository):
        mock_repository.insert_comment.return_value = make_comment("c9", "Looks fixed now", 5)
        thread = CommentThread(mock_repository, "t-1")

        comment = await thread.add_comment("  Looks fixed now \n")

        mock_repository.insert_comment.assert_awaited_once_with("t-1", "user-1", "Looks fixed now")
        assert comment.id == "c9"
        assert thread.comments == [comment]

    @pytest.mark.asyncio
    async def test_add_comment_requires_user(self, mock_repository):
        mock_repository.get_current_user.return_value = None

        with pytest.raises(AuthenticationRequired):
            await CommentThread(mock_repository, "t-1").add_comment("hello")

        mock_repository.insert_comment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_insert_failure_is_reraised(self, mock_repository):
        mock_repository.insert_comment.side_effect = PermissionDenied("row-level security")
        thread = CommentThread(mock_repository, "t-1")

        with pytest.raises(PermissionDenied):
            await thread.add_comment("hello")

        assert thread.comments == []
