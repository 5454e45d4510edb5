"""
Role lookup and the assignment directory.

A user without a role record is treated as a plain user. That default is
logged separately from a lookup that actually failed, so the two can be told
apart in the logs.
"""

import logging
from typing import Dict, List, Optional

from helpdesk.models.user import DirectoryUser, UserRole
from helpdesk.tickets.errors import NotFound, TicketError

logger = logging.getLogger(__name__)

UNASSIGNED_LABEL = "Unassigned"
UNKNOWN_USER_LABEL = "Unknown User"


async def resolve_role(repository, user_id: str) -> UserRole:
    """Effective role for ``user_id``; never raises for lookup problems."""
    try:
        return await repository.get_user_role(user_id)
    except NotFound:
        logger.info(f"No role record for user {user_id}, defaulting to user role")
    except TicketError as e:
        logger.warning(f"Role lookup failed for user {user_id}, defaulting to user role: {e}")
    except ValueError as e:
        logger.warning(f"Unknown role value for user {user_id}, defaulting to user role: {e}")
    return UserRole.USER


def can_access_admin(role: Optional[UserRole]) -> bool:
    return role is not None and UserRole(role).is_staff


async def load_directory(repository) -> List[DirectoryUser]:
    """
    Users that tickets can be assigned to.

    An empty list means no directory is available (for example when the
    caller is not privileged); assignment still works by id.
    """
    try:
        return await repository.list_all_users()
    except TicketError as e:
        logger.warning(f"Could not fetch users: {e}")
        return []


def assignee_label(user_id: Optional[str], directory: List[DirectoryUser]) -> str:
    if not user_id:
        return UNASSIGNED_LABEL
    emails: Dict[str, str] = {user.id: user.email for user in directory}
    return emails.get(user_id) or UNKNOWN_USER_LABEL
