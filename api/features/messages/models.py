"""Models for the Messages feature."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from api.features.messages.entities.feedback import FeedbackType, MessageFeedback
from api.features.messages.entities.message import Message, MessageStatus, SenderType


class FeedbackModel(BaseModel):
    """Domain model for a feedback record."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Feedback identifier")
    message_id: int = Field(description="Chain root the feedback is bound to")
    user_id: str = Field(description="Author of the feedback")
    feedback_type: FeedbackType = Field(description="like or dislike")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp")

    @classmethod
    def from_entity(cls, entity: MessageFeedback) -> "FeedbackModel":
        return cls.model_validate(entity)


class MessageVersionModel(BaseModel):
    """One version of a bot reply, as shown in a version picker."""

    version_index: int = Field(description="Version position within the chain")
    message_id: int = Field(description="Message identifier of this version")
    content: str = Field(description="Version content")
    status: MessageStatus = Field(description="Generation status")
    created_at: datetime = Field(description="Creation timestamp")

    @classmethod
    def from_entity(cls, entity: Message) -> "MessageVersionModel":
        return cls(
            version_index=entity.version_position,
            message_id=entity.id,
            content=entity.content,
            status=entity.status,
            created_at=entity.created_at,
        )


class MessageModel(BaseModel):
    """Domain model for Message.

    ``versions`` and ``feedback`` are only meaningful for bot replies and are
    filled from the chain root, whichever version this model represents.
    """

    id: int = Field(description="Message identifier")
    conversation_id: int = Field(description="Owning conversation")
    sender: SenderType = Field(description="user or bot")
    content: str = Field(description="Message content")
    status: MessageStatus = Field(description="Generation status")
    parent_id: Optional[int] = Field(default=None, description="User message a bot reply answers")
    ai_model_id: Optional[int] = Field(default=None, description="Generation model")
    chain_root_id: Optional[int] = Field(default=None, description="Chain root, null for roots")
    version_position: int = Field(default=0, description="Position within the chain")
    attachment_count: int = Field(default=0, description="Number of stored attachments")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp")
    feedback: Optional[FeedbackModel] = Field(default=None, description="Viewer feedback on the chain")
    versions: Optional[List[MessageVersionModel]] = Field(
        default=None, description="All versions of the chain, ascending"
    )

    @classmethod
    def from_entity(
        cls,
        entity: Message,
        *,
        versions: Optional[List[Message]] = None,
        feedback: Optional[MessageFeedback] = None,
    ) -> "MessageModel":
        """Create model from database entity plus optional chain enrichment."""
        is_bot = entity.sender == SenderType.BOT
        return cls(
            id=entity.id,
            conversation_id=entity.conversation_id,
            sender=entity.sender,
            content=entity.content,
            status=entity.status,
            parent_id=entity.parent_id,
            ai_model_id=entity.ai_model_id,
            chain_root_id=entity.chain_root_id,
            version_position=entity.version_position,
            attachment_count=entity.attachment_count,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
            feedback=FeedbackModel.from_entity(feedback) if is_bot and feedback else None,
            versions=(
                [MessageVersionModel.from_entity(v) for v in versions]
                if is_bot and versions is not None
                else None
            ),
        )

    @property
    def root_id(self) -> int:
        return self.chain_root_id if self.chain_root_id is not None else self.id


class RegenerationResult(BaseModel):
    """A freshly generated version together with its whole chain."""

    message: MessageModel = Field(description="The new current version")
    versions: List[MessageVersionModel] = Field(description="All versions, ascending")


class SendMessageResult(BaseModel):
    """Outcome of a user turn: the stored user message and the bot reply."""

    conversation_id: int
    title: str
    user_message: MessageModel
    bot_message: MessageModel
