"""
Inbox error taxonomy

Every error is an HTTPException so the service layer can raise it directly
and FastAPI turns it into a JSON response with a human-readable detail.
"""

from typing import Optional

from fastapi import HTTPException


class InboxError(HTTPException):
    """Base class for all inbox errors"""

    status_code = 400
    default_detail = "Request could not be processed"

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )

    def __str__(self) -> str:
        return str(self.detail)


class NotAuthenticated(InboxError):
    """No resolved caller identity"""

    status_code = 401
    default_detail = "Not authenticated"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class PermissionDenied(InboxError):
    """Caller is authenticated but the action is reserved for staff"""

    status_code = 403
    default_detail = "Only studio staff can perform this action"


class NotFound(InboxError):
    """Referenced thread, profile, service or booking does not exist"""

    status_code = 404
    default_detail = "Not found"


class ValidationError(InboxError):
    """Empty message body or missing required thread fields"""

    status_code = 422
    default_detail = "Invalid input"


class ConstraintViolation(InboxError):
    """Write would break a thread invariant"""

    status_code = 409
    default_detail = "Constraint violation"


class InvalidStatusTransition(ConstraintViolation):
    """Requested status is not reachable from the thread's current status"""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move thread from '{current}' to '{target}'")
