# helpdesk_mini/backend/app/errors.py
"""
Error taxonomy for the helpdesk API.

Every error carries the HTTP status, a stable machine-readable code and an
optional field name. Extra attributes (current_version, retry_after) are
rendered into the error envelope:

    {"error": {"code": ..., "field": ..., "message": ..., **extra}}
"""
from typing import Any, Dict, Optional


class HelpdeskError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        field: Optional[str] = None,
        code: Optional[str] = None,
    ) -> None:
        self.message = message or self.default_message
        self.field = field
        if code is not None:
            self.code = code
        super().__init__(self.message)

    def extra(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code}
        if self.field is not None:
            body["field"] = self.field
        body["message"] = self.message
        body.update(self.extra())
        return {"error": body}


class FieldRequired(HelpdeskError):
    status_code = 400
    code = "FIELD_REQUIRED"

    def __init__(self, field: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"{field.capitalize()} is required", field=field)


class ValidationFailed(HelpdeskError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class Duplicate(HelpdeskError):
    status_code = 400
    code = "FIELD_DUPLICATE"

    def __init__(self, field: str) -> None:
        super().__init__(f"{field.capitalize()} already exists", field=field)


class InvalidParent(HelpdeskError):
    status_code = 400
    code = "INVALID_PARENT_COMMENT"
    default_message = "Parent comment does not belong to this ticket"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message, field="parent_id")


class InvalidCredentials(HelpdeskError):
    status_code = 401
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class TokenRequired(HelpdeskError):
    status_code = 401
    code = "TOKEN_REQUIRED"
    default_message = "Access token is required"


class InvalidToken(HelpdeskError):
    status_code = 401
    code = "INVALID_TOKEN"
    default_message = "Invalid or expired token"


class PermissionDenied(HelpdeskError):
    status_code = 403
    code = "INSUFFICIENT_PERMISSIONS"
    default_message = "Insufficient permissions for this action"


class NotFound(HelpdeskError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class TicketNotFound(NotFound):
    code = "TICKET_NOT_FOUND"
    default_message = "Ticket not found"


class ParentCommentNotFound(NotFound):
    code = "PARENT_COMMENT_NOT_FOUND"
    default_message = "Parent comment not found"


class VersionConflict(HelpdeskError):
    """
    Expected version no longer matches the stored one.
    Recoverable: the caller re-reads the ticket and resubmits.
    """

    status_code = 409
    code = "VERSION_CONFLICT"
    default_message = (
        "Ticket has been modified by another user. Please refresh and try again."
    )

    def __init__(self, current_version: int) -> None:
        self.current_version = current_version
        super().__init__()

    def extra(self) -> Dict[str, Any]:
        return {"current_version": self.current_version}


class RateLimited(HelpdeskError):
    status_code = 429
    code = "RATE_LIMIT"
    default_message = "Too many requests. Please try again later."

    def __init__(self, retry_after: int, limit: int) -> None:
        self.retry_after = retry_after
        self.limit = limit
        super().__init__()

    def extra(self) -> Dict[str, Any]:
        return {"retry_after": self.retry_after}
