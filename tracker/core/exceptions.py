"""Domain errors raised by the job services and mapped to HTTP responses."""

from typing import Optional

from fastapi import status


class TrackerError(Exception):
    """Base class for errors that are surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "internal_server_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(TrackerError):
    """Malformed or disallowed input."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "validation_error"


class MissingFieldError(ValidationError):
    """A required field was not supplied."""

    error = "missing_field"


class NotFoundError(TrackerError):
    """Unknown job id, or a job owned by another organization."""

    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class ConflictError(TrackerError):
    """The request conflicts with the job's current state."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "conflict"


class InternalError(TrackerError):
    """Unexpected persistence failure. The message is never shown to callers."""


class NoFieldsError(InternalError):
    """A partial update was requested with nothing to update."""

    def __init__(self, message: str = "No fields to update"):
        super().__init__(message)
