"""Per-user settings entity (preferred generation model)."""
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity


class UserSetting(BaseEntity):
    """Settings row for one user."""

    __tablename__ = "user_setting"

    user_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    preferred_ai_model_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("ai_model.id", ondelete="SET NULL")
    )
