"""Ordered, windowed views over a conversation's visible messages.

Items are ordered by their own creation time, user messages before bot
messages at equal time, then by id for a total order.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from api.features.messages.chain_resolver import ChainResolver
from api.features.messages.entities.message import Message, SenderType
from api.features.messages.models import MessageModel


@dataclass
class _OrderedView:
    statement: object
    visible: object
    sender_rank: object


class ConversationPager:
    """Pages over the collapsed visible set of one conversation."""

    def __init__(self, db_session: AsyncSession):
        self.session = db_session
        self.resolver = ChainResolver(db_session)

    def _ordered_view(self, conversation_id: int, descending: bool = False) -> _OrderedView:
        subquery = self.resolver.visible_statement(conversation_id).subquery("visible")
        visible = aliased(Message, subquery)
        sender_rank = case((visible.sender == SenderType.USER, 0), else_=1)
        keys = (visible.created_at, sender_rank, visible.id)
        statement = select(visible).order_by(
            *[k.desc() if descending else k.asc() for k in keys]
        )
        return _OrderedView(statement, visible, sender_rank)

    async def count(self, conversation_id: int) -> int:
        """Cardinality of the visible set, not of the stored rows."""
        visible = self.resolver.visible_statement(conversation_id).subquery("visible")
        result = await self.session.execute(select(func.count()).select_from(visible))
        return int(result.scalar() or 0)

    async def page(
        self,
        conversation_id: int,
        page_size: int,
        page_number: int,
        *,
        include_versions: bool = False,
        viewer_id: Optional[str] = None,
    ) -> Tuple[List[MessageModel], int]:
        """Return one page of visible messages and the visible-set total.

        ``page_number`` is 1-based. Bot items carry the viewer's feedback on
        their chain and, when requested, the full ascending version list.
        """
        page_number = max(page_number, 1)
        view = self._ordered_view(conversation_id)
        result = await self.session.execute(
            view.statement.offset((page_number - 1) * page_size).limit(page_size)
        )
        messages = list(result.scalars().all())
        total = await self.count(conversation_id)
        return await self.enrich(
            messages, include_versions=include_versions, viewer_id=viewer_id
        ), total

    async def enrich(
        self,
        messages: List[Message],
        *,
        include_versions: bool = False,
        viewer_id: Optional[str] = None,
    ) -> List[MessageModel]:
        """Attach chain versions and viewer feedback with one batch query each."""
        root_ids = {m.root_id for m in messages if m.sender == SenderType.BOT}
        versions = await self.resolver.versions(root_ids) if include_versions else {}
        feedback = (
            await self.resolver.feedback_for(root_ids, viewer_id)
            if viewer_id is not None
            else {}
        )
        return [
            MessageModel.from_entity(
                m,
                versions=versions.get(m.root_id, []) if include_versions else None,
                feedback=feedback.get(m.root_id),
            )
            for m in messages
        ]

    async def context_window(
        self, conversation_id: int, limit: int, *, until: Optional[Message] = None
    ) -> List[Message]:
        """The last ``limit`` visible messages in display order.

        With ``until`` (a user message) the window ends at that message, so
        replies that came after it are not part of the context.
        """
        view = self._ordered_view(conversation_id, descending=True)
        statement = view.statement
        if until is not None:
            statement = statement.where(
                or_(
                    view.visible.created_at < until.created_at,
                    and_(
                        view.visible.created_at == until.created_at,
                        view.sender_rank == 0,
                        view.visible.id <= until.id,
                    ),
                )
            )
        result = await self.session.execute(statement.limit(limit))
        return list(reversed(result.scalars().all()))
