"""Shared exceptions for the chat API."""
from typing import Any, Dict, Optional


class ChatAPIException(Exception):
    """Base exception for the chat API."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(ChatAPIException):
    """Raised when input validation fails."""

    status_code = 422

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)


class NotFoundError(ChatAPIException):
    """Raised when a resource is not found."""

    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        message = f"{resource} with identifier '{identifier}' not found"
        super().__init__(message, "NOT_FOUND", {"resource": resource, "identifier": str(identifier)})


class ForbiddenError(ChatAPIException):
    """Raised when the caller is not allowed to act on a resource."""

    status_code = 403

    def __init__(self, action: str, resource: str, identifier: Any = None):
        message = f"Not allowed to {action} {resource}"
        details: Dict[str, Any] = {"action": action, "resource": resource}
        if identifier is not None:
            message += f" '{identifier}'"
            details["identifier"] = str(identifier)
        super().__init__(message, "FORBIDDEN", details)


class InvalidOperationError(ChatAPIException):
    """Raised when an operation does not apply to the target resource."""

    status_code = 422

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "INVALID_OPERATION", details)


class ChainContentionError(ChatAPIException):
    """Raised when concurrent writers keep colliding on the same chain.

    Retryable: the caller may repeat the request.
    """

    status_code = 409
    retryable = True

    def __init__(self, root_id: int, attempts: int):
        message = f"Chain {root_id} is busy, gave up after {attempts} attempts"
        super().__init__(message, "CHAIN_CONTENTION", {"root_id": root_id, "attempts": attempts})


class UpstreamGenerationError(ChatAPIException):
    """Raised when the generation backend fails to produce a reply."""

    status_code = 502

    def __init__(self, service: str, message: str, details: Optional[Dict[str, Any]] = None):
        full_message = f"{service} generation error: {message}"
        super().__init__(full_message, "UPSTREAM_GENERATION_FAILURE", details)


class StorageError(ChatAPIException):
    """Raised when attachment storage operations fail."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "STORAGE_ERROR", details)
