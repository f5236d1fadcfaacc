"""
Error taxonomy for FeedFind.

Validation and permission errors are surfaced verbatim to the user and
never retried. Network errors may be retried on reads only.
"""

from typing import Optional


class FeedFindError(Exception):
    """Base class for all errors raised by the service layer."""

    code = "UNKNOWN_ERROR"
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "detail": self.message,
            "retryable": self.retryable,
        }


class ValidationError(FeedFindError):
    """Malformed input caught before any write."""

    code = "VALIDATION_ERROR"
    status_code = 400


class PermissionDeniedError(FeedFindError):
    """Caller lacks the role or membership required for the action."""

    code = "PERMISSION_DENIED"
    status_code = 403


class NotFoundError(FeedFindError):
    """Referenced document does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class ConflictError(FeedFindError):
    """Requested state transition is not allowed from the current state."""

    code = "INVALID_TRANSITION"
    status_code = 409


class NetworkError(FeedFindError):
    """Transient backend unavailability."""

    code = "NETWORK_ERROR"
    status_code = 503
    retryable = True
