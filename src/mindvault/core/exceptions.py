"""Exception taxonomy for Mindvault.

Every exception carries the HTTP status it maps to at the route boundary and
renders itself as the ``{error, details?}`` response body.
"""

from typing import Any


class MindvaultError(Exception):
    """Base exception for Mindvault."""

    status_code: int = 500

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict[str, Any]:
        """Render the JSON error body."""
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(MindvaultError):
    """Exception raised when required fields are missing or malformed."""

    status_code = 400


class InvalidChunkIndexError(ValidationError):
    """Exception raised when a chunk index is outside the session's range."""
    pass


class IncompleteUploadError(ValidationError):
    """Exception raised when completion is requested before all chunks arrived."""
    pass


class MalformedPayloadError(MindvaultError):
    """Exception raised when a reassembled upload is not valid JSON."""

    status_code = 400

    def __init__(
        self,
        message: str,
        details: str | None = None,
        data_type: str = "string",
        data_length: int = 0,
    ):
        super().__init__(message, details)
        self.data_type = data_type
        self.data_length = data_length

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        body["dataType"] = self.data_type
        body["dataLength"] = self.data_length
        return body


class SessionNotFoundError(MindvaultError):
    """Exception raised when an upload session id is unknown."""

    status_code = 400


class NotFoundError(MindvaultError):
    """Exception raised when a persisted record does not exist."""

    status_code = 404


class DocumentNotFoundError(NotFoundError):
    """Exception raised when a mindmap record does not exist."""
    pass


class InvalidCredentialsError(MindvaultError):
    """Exception raised when login credentials do not match."""

    status_code = 401


class PolicyViolationError(MindvaultError):
    """Exception raised when the store rejects a row on ownership policy grounds."""

    status_code = 403


class AuthorizationFallbackError(MindvaultError):
    """Exception raised when persistence fails even without owner association."""

    status_code = 403


class ConflictError(MindvaultError):
    """Exception raised on duplicate registration."""

    status_code = 409


class InternalError(MindvaultError):
    """Exception raised for unexpected failures."""

    status_code = 500


class StoreError(InternalError):
    """Exception raised when a store operation fails for non-policy reasons."""
    pass
