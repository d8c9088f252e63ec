"""Controller for the Conversations feature."""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversations.dtos import (
    ConversationDetailResponse,
    ConversationListResponse,
    CreateConversationRequest,
    UpdateConversationRequest,
)
from api.features.conversations.models import ConversationModel
from api.features.conversations.service import ConversationService
from api.shared.auth import Identity


class ConversationController:
    """Controller handling conversation CRUD and the message view."""

    def __init__(self, conversation_service: ConversationService):
        self.conversation_service = conversation_service

    async def create_conversation(
        self,
        request: CreateConversationRequest,
        identity: Identity,
        *,
        db_session: AsyncSession,
    ) -> ConversationModel:
        return await self.conversation_service.create_conversation(
            identity, request.title, db_session=db_session
        )

    async def list_conversations(
        self,
        identity: Identity,
        *,
        title: Optional[str],
        sort: str,
        page: int,
        per_page: Optional[int],
        db_session: AsyncSession,
    ) -> ConversationListResponse:
        items, total = await self.conversation_service.list_conversations(
            identity,
            title=title,
            sort=sort,
            page=page,
            per_page=per_page,
            db_session=db_session,
        )
        size = per_page or self.conversation_service.settings.CONVERSATION_PAGE_SIZE
        return ConversationListResponse(
            items=items,
            total=total,
            page=page,
            per_page=size,
            has_next=page * size < total,
        )

    async def get_conversation(
        self,
        conversation_id: int,
        identity: Identity,
        *,
        page: int,
        per_page: Optional[int],
        include_versions: bool,
        db_session: AsyncSession,
    ) -> ConversationDetailResponse:
        conversation, messages, total = await self.conversation_service.get_conversation(
            conversation_id,
            identity,
            page=page,
            per_page=per_page,
            include_versions=include_versions,
            db_session=db_session,
        )
        settings = self.conversation_service.settings
        size = min(per_page or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
        return ConversationDetailResponse(
            conversation=conversation,
            messages=messages,
            total_messages=total,
            page=page,
            per_page=size,
            has_next=page * size < total,
        )

    async def rename_conversation(
        self,
        conversation_id: int,
        request: UpdateConversationRequest,
        identity: Identity,
        *,
        db_session: AsyncSession,
    ) -> ConversationModel:
        return await self.conversation_service.rename_conversation(
            conversation_id, identity, request.title, db_session=db_session
        )

    async def delete_conversation(
        self, conversation_id: int, identity: Identity, *, db_session: AsyncSession
    ) -> None:
        await self.conversation_service.delete_conversation(
            conversation_id, identity, db_session=db_session
        )

    async def restore_conversation(
        self, conversation_id: int, identity: Identity, *, db_session: AsyncSession
    ) -> ConversationModel:
        return await self.conversation_service.restore_conversation(
            conversation_id, identity, db_session=db_session
        )
