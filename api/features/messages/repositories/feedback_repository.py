"""Feedback repository."""
from typing import Dict, Iterable, Optional

from sqlalchemy import select

from api.features.messages.entities.feedback import MessageFeedback
from api.shared.base import BaseRepository


class FeedbackRepository(BaseRepository[MessageFeedback]):
    """Repository for feedback rows keyed by (chain root, user)."""

    model = MessageFeedback

    async def get_for_user(
        self, root_id: int, user_id: str, *, for_update: bool = False
    ) -> Optional[MessageFeedback]:
        stmt = select(MessageFeedback).where(
            MessageFeedback.message_id == root_id,
            MessageFeedback.user_id == user_id,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_roots(
        self, root_ids: Iterable[int], user_id: str
    ) -> Dict[int, MessageFeedback]:
        """Batch fetch one user's feedback for several chains, keyed by root id."""
        ids = set(root_ids)
        if not ids:
            return {}
        stmt = select(MessageFeedback).where(
            MessageFeedback.message_id.in_(ids),
            MessageFeedback.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return {feedback.message_id: feedback for feedback in result.scalars().all()}
