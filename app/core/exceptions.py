"""
Error taxonomy for admin actions.

Every failure of an admin action is one of four categories. Each maps to a
status code and is rendered by the exception handler in app.main as
{"error": <message>, "category": <category>}.
"""
from fastapi import HTTPException, status


class AdminActionError(HTTPException):
    """Base class for failures surfaced to the caller of an admin action."""

    category: str = "error"
    status_code_default: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(status_code=self.status_code_default, detail=message)

    @property
    def message(self) -> str:
        return self.detail


class UnauthorizedError(AdminActionError):
    """Actor missing, lacking the required permission/role, or deleting themselves."""
    category = "unauthorized"
    status_code_default = status.HTTP_403_FORBIDDEN


class ValidationError(AdminActionError):
    """Malformed, missing or out-of-enumeration input."""
    category = "validation_error"
    status_code_default = status.HTTP_400_BAD_REQUEST


class NotFoundError(AdminActionError):
    """Referenced entity or binding absent, or a list query with zero rows."""
    category = "not_found"
    status_code_default = status.HTTP_404_NOT_FOUND


class ConflictError(AdminActionError):
    """Binding already exists."""
    category = "conflict"
    status_code_default = status.HTTP_400_BAD_REQUEST
