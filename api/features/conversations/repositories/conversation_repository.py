"""Conversation repository."""
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update

from api.features.conversations.entities.conversation import Conversation
from api.shared.base import BaseRepository
from api.shared.entities.base import utcnow

SORTABLE_FIELDS = ("created_at", "updated_at")


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for conversations; soft-deleted rows are hidden by default."""

    model = Conversation

    async def get_active(self, conversation_id: int) -> Optional[Conversation]:
        """Get a conversation unless it is soft-deleted."""
        stmt = select(Conversation).where(
            Conversation.id == conversation_id, Conversation.deleted_at.is_(None)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_user(
        self,
        user_id: str,
        *,
        title: Optional[str] = None,
        sort: str = "-updated_at",
        offset: int = 0,
        limit: int = 15,
    ) -> Tuple[List[Conversation], int]:
        """List a user's live conversations, optionally filtered by title."""
        conditions = [Conversation.user_id == user_id, Conversation.deleted_at.is_(None)]
        if title:
            conditions.append(Conversation.title.ilike(f"%{title}%"))

        field_name = sort.lstrip("-")
        if field_name not in SORTABLE_FIELDS:
            field_name = "updated_at"
        field = getattr(Conversation, field_name)
        if sort.startswith("-"):
            order = (field.desc(), Conversation.id.desc())
        else:
            order = (field.asc(), Conversation.id.asc())

        stmt = (
            select(Conversation)
            .where(*conditions)
            .order_by(*order)
            .offset(offset)
            .limit(limit)
        )
        count_stmt = select(func.count(Conversation.id)).where(*conditions)

        result = await self.session.execute(stmt)
        count_result = await self.session.execute(count_stmt)
        return list(result.scalars().all()), int(count_result.scalar() or 0)

    async def touch(self, conversation_id: int) -> None:
        """Bump ``updated_at`` after a new message."""
        await self.session.execute(
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .values(updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
