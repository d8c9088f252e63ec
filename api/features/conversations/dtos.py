"""DTOs for the Conversations feature."""
from typing import List, Optional

from pydantic import Field, field_validator

from api.features.conversations.models import ConversationModel
from api.features.messages.models import MessageModel
from api.shared.dtos import BaseDTO, PaginationResponse


class CreateConversationRequest(BaseDTO):
    title: Optional[str] = Field(default=None, max_length=255, description="Conversation title")


class UpdateConversationRequest(BaseDTO):
    title: str = Field(..., max_length=255, description="New title")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()


class ConversationListResponse(PaginationResponse[ConversationModel]):
    """Page of the caller's conversations."""


class ConversationDetailResponse(BaseDTO):
    """A conversation with one page of its visible messages."""

    conversation: ConversationModel = Field(description="Conversation")
    messages: List[MessageModel] = Field(description="Visible messages on this page")
    total_messages: int = Field(description="Size of the visible set")
    page: int = Field(description="1-based page number")
    per_page: int = Field(description="Page size")
    has_next: bool = Field(description="Whether there are more messages")
