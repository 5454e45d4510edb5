"""
Ticket submission: validation, attachment upload and insert.
"""

import logging
from typing import Iterable, List, Optional

from helpdesk.models.ticket import Attachment, CreateTicketData, Ticket
from helpdesk.tickets.errors import AuthenticationRequired, FileTooLarge, ValidationError
from helpdesk.tickets.transitions import normalize_tags, text_value
from helpdesk.utils.constants import settings

logger = logging.getLogger(__name__)


def check_attachment_sizes(attachments: Iterable[Attachment], limit: Optional[int] = None) -> None:
    """Raise FileTooLarge for the first file over ``limit`` bytes."""
    if limit is None:
        limit = settings.MAX_ATTACHMENT_BYTES
    for attachment in attachments:
        if attachment.size > limit:
            raise FileTooLarge(attachment.filename, attachment.size, limit)


async def upload_attachments(
    store,
    attachments: List[Attachment],
    owner_id: str,
    limit: Optional[int] = None,
) -> List[str]:
    """Size-check every file, then upload. Nothing is sent if any file is too large."""
    check_attachment_sizes(attachments, limit)
    if not attachments:
        return []
    urls = await store.upload_many(attachments, owner_id)
    if len(urls) < len(attachments):
        logger.warning(f"{len(attachments) - len(urls)} of {len(attachments)} attachments failed to upload")
    return urls


async def submit_ticket(
    repository,
    store,
    data: CreateTicketData,
    attachments: Optional[List[Attachment]] = None,
    projections: Iterable = (),
) -> Ticket:
    """
    File a new ticket for the current user.

    The status is always open regardless of what the client sent. The new
    ticket is placed at the head of every projection given.
    """
    attachments = attachments or []

    title = text_value(data.title, "title")
    if not title:
        raise ValidationError("Title is required")
    check_attachment_sizes(attachments)

    user = await repository.get_current_user()
    if user is None:
        raise AuthenticationRequired()

    urls = await upload_attachments(store, attachments, user.id)

    row = {
        "title": title,
        "description": text_value(data.description, "description") or None,
        "priority": data.priority,
        "user_id": user.id,
    }
    tags = normalize_tags(data.tags)
    if urls:
        row["attachments"] = urls
    if tags:
        row["tags"] = tags

    ticket = await repository.insert_ticket(row)

    for projection in projections:
        projection.add_local(ticket)

    return ticket
