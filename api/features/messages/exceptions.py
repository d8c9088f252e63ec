"""Exceptions for the Messages feature."""
from typing import Any, Dict, Optional

from api.shared.exceptions import (
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)


class MessageNotFoundError(NotFoundError):
    """Raised when a message is not found."""

    def __init__(self, message_id: int):
        super().__init__("Message", message_id)


class FeedbackNotFoundError(NotFoundError):
    """Raised when a feedback record is not found."""

    def __init__(self, identifier: Any):
        super().__init__("Feedback", identifier)


class RegenerationNotAllowedError(InvalidOperationError):
    """Raised when regeneration targets a message that is not a bot reply."""

    def __init__(self, message_id: int):
        super().__init__(
            f"Message '{message_id}' is not a bot reply and cannot be regenerated",
            {"message_id": message_id},
        )


class FeedbackNotAllowedError(InvalidOperationError):
    """Raised when feedback targets a message that is not a bot reply."""

    def __init__(self, message_id: int):
        super().__init__(
            f"Feedback can only be given on bot replies, message '{message_id}' is not one",
            {"message_id": message_id},
        )


class NoAiModelError(ValidationError):
    """Raised when no model was requested and the user has no preferred one."""

    def __init__(self, user_id: str):
        super().__init__(
            "No AI model specified. Set a preferred AI model in your settings "
            "or specify one in the request.",
            {"user_id": user_id},
        )


class AttachmentLimitError(ValidationError):
    """Raised when an upload exceeds the attachment limits."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
