"""Application exceptions.

Domain exceptions with HTTP status codes.
These exceptions are caught by exception handlers and converted to proper HTTP responses.
"""

from typing import Any

# Message shown to dashboard users when a download cannot be served
FILE_NOT_FOUND_MESSAGE = "File not found on server"


class AppException(Exception):
    """Base exception for all application errors.

    Attributes:
        message: Human-readable error message.
        code: Machine-readable error code for clients.
        status_code: HTTP status code to return.
        details: Additional error details (e.g., field names, IDs).
    """

    message: str = "An error occurred"
    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.__class__.message
        self.code = code or self.__class__.code
        self.details = details or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, code={self.code!r})"


# === 4xx Client Errors ===


class BadRequestError(AppException):
    """Bad request (400)."""

    message = "Bad request"
    code = "BAD_REQUEST"
    status_code = 400


class NotFoundError(AppException):
    """Resource not found (404)."""

    message = "Resource not found"
    code = "NOT_FOUND"
    status_code = 404


class PayloadTooLargeError(AppException):
    """Request payload too large (413)."""

    message = "Payload too large"
    code = "PAYLOAD_TOO_LARGE"
    status_code = 413


class ValidationError(AppException):
    """Validation error (422)."""

    message = "Validation error"
    code = "VALIDATION_ERROR"
    status_code = 422


# === 5xx Server Errors ===


class ExternalServiceError(AppException):
    """External service unavailable (503)."""

    message = "External service unavailable"
    code = "EXTERNAL_SERVICE_ERROR"
    status_code = 503


class InternalError(AppException):
    """Internal server error (500)."""

    message = "Internal server error"
    code = "INTERNAL_ERROR"
    status_code = 500


# === Attachment Errors ===


class InvalidDealError(BadRequestError):
    """Upload references a deal the deal API does not know."""

    message = "Deal does not exist"
    code = "INVALID_DEAL"


class VersionMismatchError(BadRequestError):
    """Parent attachment is missing or belongs to a different deal."""

    message = "Parent attachment does not belong to this deal"
    code = "VERSION_MISMATCH"


class DealNotFoundError(NotFoundError):
    """Listing attachments of an unknown deal."""

    message = "Deal not found"
    code = "DEAL_NOT_FOUND"


class AttachmentNotFoundError(NotFoundError):
    """No catalog row for the attachment id."""

    message = "Attachment not found"
    code = "ATTACHMENT_NOT_FOUND"


class BlobMissingError(NotFoundError):
    """Catalog row exists but its bytes are gone.

    Surfaces to users exactly like AttachmentNotFoundError, but indicates that
    upload-time durability was violated and is reported as an integrity anomaly.
    """

    message = "Attachment bytes missing from storage"
    code = "BLOB_MISSING"


class AttachmentTooLargeError(PayloadTooLargeError):
    """Uploaded file exceeds MAX_ATTACHMENT_SIZE_MB."""

    message = "Attachment exceeds the maximum allowed size"
    code = "ATTACHMENT_TOO_LARGE"
