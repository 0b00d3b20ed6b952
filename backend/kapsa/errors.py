"""
Error taxonomy for the AI handlers.

Every anticipated failure is a KapsaError subclass carrying the HTTP status
and a short message that is safe to show to the caller. Anything else is
treated as unanticipated by the exception handlers in main.py: logged with a
traceback and surfaced only as a generic message.
"""

from fastapi import status


class KapsaError(Exception):
    """Base class for errors that map to a user-safe response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An internal error occurred. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(KapsaError):
    """Malformed identifier, parameter, or body shape."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthenticated(KapsaError):
    """Missing or rejected bearer credential."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class NotFound(KapsaError):
    """Record does not exist or is not owned by the caller (indistinguishable)."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ServiceUnavailable(KapsaError):
    """The inference service rejected the job submission."""

    default_message = "AI service unavailable. Please try again."


class InferenceTimeout(KapsaError):
    """The inference job did not reach a terminal state in time."""

    default_message = "AI processing timed out. Please try again."


class InferenceFailed(KapsaError):
    """The inference job reached the failed terminal state."""

    default_message = "AI processing failed. Please try again."


class MalformedModelOutput(KapsaError):
    """Model output could not be parsed or repaired into the expected shape."""

    default_message = "Failed to generate a valid response. Please try again."
