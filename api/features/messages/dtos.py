"""DTOs for the Messages feature."""
from typing import List, Optional

from pydantic import Field, field_validator

from api.features.messages.entities.feedback import FeedbackType
from api.features.messages.models import FeedbackModel, MessageModel, MessageVersionModel
from api.shared.dtos import BaseDTO


class SendMessageRequest(BaseDTO):
    """Request DTO for sending a user message."""

    content: str = Field(..., description="Message text")
    ai_model_id: Optional[int] = Field(
        default=None, description="Model to answer with; defaults to the preferred one"
    )

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Message content cannot be empty")
        return v.strip()


class NewConversationMessageRequest(SendMessageRequest):
    """Request DTO for sending a message into a new conversation."""

    title: Optional[str] = Field(default=None, max_length=255, description="Conversation title")


class RegenerateRequest(BaseDTO):
    ai_model_id: Optional[int] = Field(
        default=None, description="Override the model used by the original reply"
    )


class FeedbackRequest(BaseDTO):
    feedback_type: FeedbackType = Field(..., description="like or dislike")


class SendMessageResponse(BaseDTO):
    """Response DTO for a user turn and its bot reply."""

    conversation_id: int = Field(description="Conversation identifier")
    title: str = Field(description="Conversation title")
    user_message: MessageModel = Field(description="Stored user message")
    bot_message: MessageModel = Field(description="Bot reply (chain root)")


class RegenerateResponse(BaseDTO):
    message: MessageModel = Field(description="New current version")
    versions: List[MessageVersionModel] = Field(description="All versions, ascending")


class VersionListResponse(BaseDTO):
    message_id: int = Field(description="Requested message")
    root_id: int = Field(description="Chain root")
    versions: List[MessageVersionModel] = Field(description="All versions, ascending")


class FeedbackResponse(BaseDTO):
    feedback: Optional[FeedbackModel] = Field(default=None, description="Feedback record")
