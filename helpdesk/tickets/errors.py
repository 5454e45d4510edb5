"""
Error kinds raised by the ticket core and its backend collaborators.

Each kind carries the HTTP status the support blueprint answers with.
"""

from typing import Any, Dict


class TicketError(Exception):
    """Base class for every failure the ticket core surfaces."""

    status_code = 500
    code = "ticket_error"

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__doc__.strip())
        self.message = str(self.args[0])

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code}


# Load failures are reported under this name at the projection boundary.
RepositoryError = TicketError


class AuthenticationRequired(TicketError):
    """User not authenticated"""

    status_code = 401
    code = "auth_required"


class PermissionDenied(TicketError):
    """Permission denied"""

    status_code = 403
    code = "permission_denied"


class NotFound(TicketError):
    """Record not found"""

    status_code = 404
    code = "not_found"


class ValidationError(TicketError):
    """Invalid input"""

    status_code = 400
    code = "validation_error"


class FileTooLarge(ValidationError):
    """File is too large"""

    status_code = 413
    code = "file_too_large"

    def __init__(self, filename: str, size: int, limit: int):
        super().__init__(
            f"File {filename} is too large. Maximum size is {limit // (1024 * 1024)}MB."
        )
        self.filename = filename
        self.size = size
        self.limit = limit


class TransportError(TicketError):
    """Backend request failed"""

    status_code = 502
    code = "transport_error"
