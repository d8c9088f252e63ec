"""Message entity: user turns and versioned bot replies."""
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity


class SenderType(str, Enum):
    """Who wrote the message."""

    USER = "user"
    BOT = "bot"


class MessageStatus(str, Enum):
    """Generation status of a message."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Message(BaseEntity):
    """A single message in a conversation.

    Bot replies form chains: the first reply is the chain root
    (``chain_root_id`` is NULL, ``version_position`` 0) and every
    regeneration points back at that root with a strictly greater position.
    User messages never take part in a chain.
    """

    __tablename__ = "message"
    __table_args__ = (
        UniqueConstraint(
            "chain_root_id", "version_position", name="uq_message_chain_position"
        ),
        CheckConstraint(
            "sender = 'bot' OR (chain_root_id IS NULL AND version_position = 0)",
            name="ck_message_user_not_versioned",
        ),
        CheckConstraint(
            "(chain_root_id IS NULL AND version_position = 0)"
            " OR (chain_root_id IS NOT NULL AND version_position > 0)",
            name="ck_message_root_position",
        ),
        Index("ix_message_conversation_created_at", "conversation_id", "created_at"),
        Index("ix_message_chain_root_id", "chain_root_id"),
    )

    conversation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("conversation.id", ondelete="CASCADE"), nullable=False
    )
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("message.id", ondelete="CASCADE")
    )
    sender: Mapped[SenderType] = mapped_column(
        SQLEnum(SenderType, name="message_sender", values_callable=_enum_values),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ai_model_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("ai_model.id", ondelete="SET NULL")
    )
    chain_root_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("message.id", ondelete="CASCADE")
    )
    version_position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[MessageStatus] = mapped_column(
        SQLEnum(MessageStatus, name="message_status", values_callable=_enum_values),
        nullable=False,
        default=MessageStatus.COMPLETED,
    )
    attachment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def is_bot(self) -> bool:
        return self.sender == SenderType.BOT

    @property
    def is_chain_root(self) -> bool:
        return self.chain_root_id is None

    @property
    def root_id(self) -> int:
        """Id of the chain this message belongs to (itself for roots)."""
        return self.chain_root_id if self.chain_root_id is not None else self.id
