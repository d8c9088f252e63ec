"""Visible-set computation over versioned bot replies.

The visible set of a conversation is every user message plus, for each
chain of bot replies, only its current version: the row with the highest
version position (ties broken by the highest id). Chains are grouped by
``coalesce(chain_root_id, id)`` in a single windowed query.
"""
from typing import Dict, Iterable, List

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.messages.entities.feedback import MessageFeedback
from api.features.messages.entities.message import Message, SenderType
from api.features.messages.repositories.feedback_repository import FeedbackRepository
from api.features.messages.repositories.message_repository import MessageRepository


def chain_key():
    """Expression identifying the chain a message belongs to."""
    return func.coalesce(Message.chain_root_id, Message.id)


def current_version_ids(*conditions) -> Select:
    """Ids of the current version of every bot chain matching ``conditions``."""
    rank = (
        func.row_number()
        .over(
            partition_by=chain_key(),
            order_by=(Message.version_position.desc(), Message.id.desc()),
        )
        .label("rank")
    )
    ranked = (
        select(Message.id.label("id"), rank)
        .where(Message.sender == SenderType.BOT, *conditions)
        .subquery("ranked_versions")
    )
    return select(ranked.c.id).where(ranked.c.rank == 1)


class ChainResolver:
    """Computes visible messages and composes the batch lookups around them."""

    def __init__(self, db_session: AsyncSession):
        self.session = db_session
        self.messages = MessageRepository(db_session)
        self.feedback = FeedbackRepository(db_session)

    def visible_statement(self, conversation_id: int) -> Select:
        """Unordered SELECT of the visible messages of one conversation."""
        latest = current_version_ids(Message.conversation_id == conversation_id)
        return select(Message).where(
            Message.conversation_id == conversation_id,
            or_(Message.sender == SenderType.USER, Message.id.in_(latest)),
        )

    async def resolve(self, conversation_id: int) -> List[Message]:
        """Visible messages of a conversation, in no particular order."""
        result = await self.session.execute(self.visible_statement(conversation_id))
        return list(result.scalars().all())

    async def current_versions(self, root_ids: Iterable[int]) -> Dict[int, Message]:
        """Current version of each requested chain, keyed by root id."""
        ids = set(root_ids)
        if not ids:
            return {}
        latest = current_version_ids(
            or_(Message.id.in_(ids), Message.chain_root_id.in_(ids))
        )
        result = await self.session.execute(
            select(Message).where(Message.id.in_(latest))
        )
        return {message.root_id: message for message in result.scalars().all()}

    async def versions(self, root_ids: Iterable[int]) -> Dict[int, List[Message]]:
        """Every version of each requested chain, ascending by position."""
        return await self.messages.get_versions_by_root(root_ids)

    async def feedback_for(
        self, root_ids: Iterable[int], user_id: str
    ) -> Dict[int, MessageFeedback]:
        """The viewer's feedback on each requested chain, keyed by root id."""
        return await self.feedback.get_for_roots(root_ids, user_id)
