"""
Domain error taxonomy.

Services raise these exceptions and endpoints translate them into
``HTTPException`` responses via :func:`to_http_exception`.  Every error
carries a machine readable ``kind`` and a ``details`` dictionary so
that policy denials and conflicts can report the numeric limit and
the offending value back to the client.

``ZoomAPIError`` is special: on event create/update/delete paths it
is caught by the synchronizer and downgraded to a log line, so it only
reaches clients through the Zoom proxy endpoints.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class PlatformError(Exception):
    """Base class for errors raised by the service layer."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    kind: str = "PlatformError"

    def __init__(
        self,
        message: str,
        *,
        kind: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.details: Dict[str, Any] = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message, **self.details}


class ValidationError(PlatformError):
    """Malformed or missing input, rejected before any side effect."""

    status_code = status.HTTP_400_BAD_REQUEST
    kind = "ValidationError"


class LimitExceededError(PlatformError):
    """Subscription policy denial.

    ``kind`` is one of ``EventLimitExceeded``, ``AttendeeLimitExceeded``
    or ``DurationLimitExceeded``.
    """

    status_code = status.HTTP_403_FORBIDDEN
    kind = "LimitExceeded"


class NotFoundError(PlatformError):
    """Referenced event or attendee is absent or not owned by the caller."""

    status_code = status.HTTP_404_NOT_FOUND
    kind = "NotFound"


class ConflictError(PlatformError):
    status_code = status.HTTP_409_CONFLICT
    kind = "Conflict"


class EventFullError(ConflictError):
    kind = "EventFull"


class DuplicateRegistrationError(ConflictError):
    kind = "DuplicateRegistration"


class StoreError(PlatformError):
    """The local database failed.  Never masked."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = "StoreError"


class ZoomAPIError(PlatformError):
    """The Zoom API could not be reached or rejected the request."""

    status_code = status.HTTP_502_BAD_GATEWAY
    kind = "RemoteProviderError"

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details=details)
        # HTTP status returned by Zoom, if any.  Not the status we answer with.
        self.remote_status = status_code


def to_http_exception(exc: PlatformError) -> HTTPException:
    """Convert a service error into the ``HTTPException`` FastAPI renders."""
    return HTTPException(status_code=exc.status_code, detail=exc.to_dict())
