from enum import Enum
from typing import Optional, Dict, Any

from helpdesk.models.base_model import BaseModel


class UserRole(str, Enum):
    """Role record from the user_roles table. Missing record means USER."""
    USER = "user"
    REVIEWER = "reviewer"
    ADMIN = "admin"

    @property
    def is_staff(self) -> bool:
        match self:
            case UserRole.ADMIN | UserRole.REVIEWER:
                return True
            case UserRole.USER:
                return False
        raise ValueError(f"Unhandled user role: {self!r}")


class DirectoryUser(BaseModel):
    """
    A user as seen through the auth provider's directory.
    Only used to label assignees; never persisted by this system.
    """

    def __init__(self):
        self.id: str = None
        self.email: str = None
        self.role: Optional[UserRole] = None

    @classmethod
    def from_auth_user(cls, user: Any) -> "DirectoryUser":
        """Build from a gotrue User object (or a plain dict in tests)."""
        if isinstance(user, dict):
            data = user
        else:
            data = {"id": getattr(user, "id", None), "email": getattr(user, "email", None)}

        directory_user = cls()
        directory_user.id = str(data.get("id")) if data.get("id") else None
        directory_user.email = data.get("email") or "Unknown"
        return directory_user

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if data.get("role") is None:
            data.pop("role", None)
        return data
