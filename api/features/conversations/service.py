"""Service layer for the Conversations feature."""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversations.entities.conversation import Conversation
from api.features.conversations.exceptions import ConversationNotFoundError
from api.features.conversations.models import ConversationModel
from api.features.conversations.repositories.conversation_repository import (
    ConversationRepository,
)
from api.features.messages.models import MessageModel
from api.features.messages.pager import ConversationPager
from api.shared.auth import Action, Authorizer, Identity
from core.settings import ChatSettings

logger = logging.getLogger("chat.conversations.service")


class ConversationService:
    """Conversation CRUD plus the paginated visible-message view."""

    def __init__(self, authorizer: Authorizer, chat_settings: ChatSettings):
        self.authorizer = authorizer
        self.settings = chat_settings

    async def _get_for(
        self,
        conversation_id: int,
        identity: Identity,
        action: Action,
        db_session: AsyncSession,
        *,
        include_deleted: bool = False,
    ) -> Conversation:
        repository = ConversationRepository(db_session)
        if include_deleted:
            entity = await repository.get_by_id(conversation_id)
        else:
            entity = await repository.get_active(conversation_id)
        if entity is None:
            raise ConversationNotFoundError(conversation_id)
        self.authorizer.ensure(identity, action, entity)
        return entity

    async def create_conversation(
        self, identity: Identity, title: Optional[str], *, db_session: AsyncSession
    ) -> ConversationModel:
        repository = ConversationRepository(db_session)
        entity = await repository.create(
            Conversation(
                user_id=identity.user_id,
                title=title or self.settings.DEFAULT_CONVERSATION_TITLE,
            )
        )
        await db_session.commit()
        logger.info(f"Conversation created: {entity.id}")
        return ConversationModel.from_entity(entity)

    async def list_conversations(
        self,
        identity: Identity,
        *,
        title: Optional[str] = None,
        sort: str = "-updated_at",
        page: int = 1,
        per_page: Optional[int] = None,
        db_session: AsyncSession,
    ) -> Tuple[List[ConversationModel], int]:
        """List the caller's live conversations."""
        per_page = per_page or self.settings.CONVERSATION_PAGE_SIZE
        entities, total = await ConversationRepository(db_session).list_for_user(
            identity.user_id,
            title=title,
            sort=sort,
            offset=(max(page, 1) - 1) * per_page,
            limit=per_page,
        )
        return [ConversationModel.from_entity(e) for e in entities], total

    async def get_conversation(
        self,
        conversation_id: int,
        identity: Identity,
        *,
        page: int = 1,
        per_page: Optional[int] = None,
        include_versions: bool = True,
        db_session: AsyncSession,
    ) -> Tuple[ConversationModel, List[MessageModel], int]:
        """A conversation plus one page of its visible messages and their total."""
        entity = await self._get_for(
            conversation_id, identity, Action.VIEW_CONVERSATION, db_session
        )
        per_page = min(
            per_page or self.settings.DEFAULT_PAGE_SIZE, self.settings.MAX_PAGE_SIZE
        )
        messages, total = await ConversationPager(db_session).page(
            conversation_id,
            per_page,
            page,
            include_versions=include_versions,
            viewer_id=identity.user_id,
        )
        return ConversationModel.from_entity(entity), messages, total

    async def rename_conversation(
        self,
        conversation_id: int,
        identity: Identity,
        title: str,
        *,
        db_session: AsyncSession,
    ) -> ConversationModel:
        await self._get_for(
            conversation_id, identity, Action.UPDATE_CONVERSATION, db_session
        )
        entity = await ConversationRepository(db_session).update_by_id(
            conversation_id, title=title
        )
        await db_session.commit()
        return ConversationModel.from_entity(entity)

    async def delete_conversation(
        self, conversation_id: int, identity: Identity, *, db_session: AsyncSession
    ) -> None:
        """Soft delete; messages stay in storage until a hard delete."""
        entity = await self._get_for(
            conversation_id, identity, Action.DELETE_CONVERSATION, db_session
        )
        entity.soft_delete()
        await db_session.commit()
        logger.info(f"Conversation {conversation_id} soft-deleted by {identity.user_id}")

    async def restore_conversation(
        self, conversation_id: int, identity: Identity, *, db_session: AsyncSession
    ) -> ConversationModel:
        entity = await self._get_for(
            conversation_id,
            identity,
            Action.RESTORE_CONVERSATION,
            db_session,
            include_deleted=True,
        )
        entity.restore()
        await db_session.commit()
        await db_session.refresh(entity)
        logger.info(f"Conversation {conversation_id} restored by {identity.user_id}")
        return ConversationModel.from_entity(entity)
