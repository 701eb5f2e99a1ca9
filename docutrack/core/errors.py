"""
Error taxonomy of the request workflow.

Every error carries a stable ``code`` and the HTTP status the API layer
answers with, so callers can branch on the kind without parsing messages.
"""


class DocuTrackError(Exception):
    """Base class for all workflow errors."""

    code = "DOCUTRACK_ERROR"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DocuTrackError):
    code = "NOT_FOUND"
    http_status = 404


class InvalidTransitionError(DocuTrackError):
    """The (from, to) pair is not an edge of the transition table."""

    code = "INVALID_TRANSITION"
    http_status = 400

    def __init__(self, from_status, to_status):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid status transition: {from_status.value} → {to_status.value}"
        )


class InvalidStateError(DocuTrackError):
    code = "INVALID_STATE"
    http_status = 400


class ValidationError(DocuTrackError):
    code = "VALIDATION_ERROR"
    http_status = 400


class StorageFailure(DocuTrackError):
    """Persistence transaction or file operation failed."""

    code = "STORAGE_FAILURE"
    http_status = 500


class ConcurrentTransitionError(StorageFailure):
    """Another transaction changed the request first; safe to retry."""

    code = "CONCURRENT_MODIFICATION"
    http_status = 409


class UnauthorizedError(DocuTrackError):
    """No actor, or the actor's account is unknown or inactive."""

    code = "UNAUTHORIZED"
    http_status = 401


class ForbiddenError(DocuTrackError):
    code = "FORBIDDEN"
    http_status = 403
