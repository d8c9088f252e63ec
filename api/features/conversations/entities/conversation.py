"""Conversation entity."""
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity, utcnow


class Conversation(BaseEntity):
    """A user-owned conversation. Soft-deleted when ``deleted_at`` is set."""

    __tablename__ = "conversation"
    __table_args__ = (
        Index("ix_conversation_user_id_updated_at", "user_id", "updated_at"),
    )

    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = utcnow()

    def restore(self) -> None:
        self.deleted_at = None
