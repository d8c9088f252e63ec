"""Models for the Conversations feature."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from api.features.conversations.entities.conversation import Conversation


class ConversationModel(BaseModel):
    """Domain model for Conversation."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Conversation identifier")
    user_id: str = Field(description="Owner")
    title: str = Field(description="Conversation title")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last activity")
    deleted_at: Optional[datetime] = Field(default=None, description="Soft delete timestamp")

    @classmethod
    def from_entity(cls, entity: Conversation) -> "ConversationModel":
        return cls.model_validate(entity)
