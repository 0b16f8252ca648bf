"""Error taxonomy for access-grant operations.

Each error is an `HTTPException`, so routers let them propagate and the shared
error handlers render them with the request id attached.
"""

from __future__ import annotations

from fastapi import HTTPException, status

ACCESS_DENIED_DETAIL = "Access to these records is not permitted."


class AccessGrantError(HTTPException):
    """Base class for business-rule rejections; never retried."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class ValidationError(AccessGrantError):
    """Missing or malformed input, e.g. a non-positive duration."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Invalid request."


class NotFoundError(AccessGrantError):
    """Referenced doctor, patient, request, or record does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."


class ConflictError(AccessGrantError):
    """Duplicate active request, or a response to a non-pending request."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Request conflicts with the current state."


class ForbiddenError(AccessGrantError):
    """Caller is not the actor allowed to perform this operation."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class AccessDeniedError(AccessGrantError):
    """The gate refused a record read.

    The detail is fixed so callers cannot tell a missing grant from a
    rejected, revoked, or expired one.
    """

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = ACCESS_DENIED_DETAIL

    def __init__(self) -> None:
        super().__init__(ACCESS_DENIED_DETAIL)
