"""Application error taxonomy.

Every error carries a human-readable message, a stable machine code and the
HTTP status it maps to. Handlers in ``libs.common.error_handler`` turn them
into the ``{success: false, error, code}`` envelope.
"""

from typing import Any, Optional


class AppError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
    ):
        self.message = message or self.message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Invalid request"


class UnauthenticatedError(AppError):
    status_code = 401
    code = "UNAUTHENTICATED"
    message = "Authentication required"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    message = "You do not have permission to perform this action"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Resource not found"

    @classmethod
    def for_resource(cls, resource: str) -> "NotFoundError":
        return cls(f"{resource} not found")


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    message = "Resource already exists"


class LastAdminError(ConflictError):
    code = "LAST_ADMIN"
    message = "The last admin cannot leave the community"


class AlreadyMemberError(ConflictError):
    code = "ALREADY_MEMBER"
    message = "Already a member of this community"


class DuplicateAttendanceError(ConflictError):
    code = "DUPLICATE_ATTENDANCE"
    message = "Attendance already recorded for this round"


class UpstreamError(AppError):
    """A third-party dependency (OAuth provider, object storage) failed."""

    status_code = 502
    code = "UPSTREAM_ERROR"
    message = "Upstream service failed"
