"""Exceptions for the Conversations feature."""
from api.shared.exceptions import NotFoundError


class ConversationNotFoundError(NotFoundError):
    """Raised when a conversation is missing or soft-deleted."""

    def __init__(self, conversation_id: int):
        super().__init__("Conversation", conversation_id)
