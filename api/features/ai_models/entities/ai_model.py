"""AI model catalogue entity."""
from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity


class AiModel(BaseEntity):
    """A generation model users can pick for their messages."""

    __tablename__ = "ai_model"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
