"""Feedback entity: one like/dislike per (chain root, user)."""
from enum import Enum

from sqlalchemy import Enum as SQLEnum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity


class FeedbackType(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"


class MessageFeedback(BaseEntity):
    """User opinion on a bot reply, always stored against the chain root."""

    __tablename__ = "message_feedback"
    __table_args__ = (
        UniqueConstraint("message_id", "user_id", name="uq_feedback_message_user"),
    )

    message_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("message.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    feedback_type: Mapped[FeedbackType] = mapped_column(
        SQLEnum(
            FeedbackType,
            name="feedback_type",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
