"""Feedback attribution: likes and dislikes live on the chain root."""
import logging
from typing import Optional, Tuple

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversations.entities.conversation import Conversation
from api.features.conversations.repositories.conversation_repository import (
    ConversationRepository,
)
from api.features.messages.contention import run_with_chain_retry
from api.features.messages.entities.feedback import FeedbackType, MessageFeedback
from api.features.messages.entities.message import Message, SenderType
from api.features.messages.exceptions import (
    FeedbackNotAllowedError,
    FeedbackNotFoundError,
    MessageNotFoundError,
)
from api.features.messages.models import FeedbackModel
from api.features.messages.repositories.feedback_repository import FeedbackRepository
from api.features.messages.repositories.message_repository import MessageRepository
from api.shared.auth import Action, Authorizer, Identity
from core.settings import ChatSettings

logger = logging.getLogger("chat.messages.feedback")
chain_logger = structlog.get_logger("chat.chain")


class FeedbackAttributor:
    """Records one opinion per (chain root, user), whichever version was rated."""

    def __init__(self, authorizer: Authorizer, chat_settings: ChatSettings):
        self.authorizer = authorizer
        self.settings = chat_settings

    async def _load_bot_message(
        self, message_id: int, db_session: AsyncSession
    ) -> Tuple[Message, Conversation]:
        message = await MessageRepository(db_session).get_by_id(message_id)
        if message is None:
            raise MessageNotFoundError(message_id)
        conversation = await ConversationRepository(db_session).get_active(
            message.conversation_id
        )
        if conversation is None:
            raise MessageNotFoundError(message_id)
        if message.sender != SenderType.BOT:
            raise FeedbackNotAllowedError(message_id)
        return message, conversation

    async def set_feedback(
        self,
        message_id: int,
        identity: Identity,
        feedback_type: FeedbackType,
        *,
        db_session: AsyncSession,
    ) -> FeedbackModel:
        """Upsert the caller's feedback on the chain ``message_id`` belongs to."""
        message, conversation = await self._load_bot_message(message_id, db_session)
        self.authorizer.ensure(identity, Action.CREATE_FEEDBACK, conversation)

        root_id = message.root_id
        user_id = identity.user_id
        await db_session.commit()

        messages = MessageRepository(db_session)
        feedback_repo = FeedbackRepository(db_session)

        async def upsert():
            await messages.lock_chain(root_id)
            existing = await feedback_repo.get_for_user(root_id, user_id, for_update=True)
            if existing is None:
                created = await feedback_repo.create(
                    MessageFeedback(
                        message_id=root_id, user_id=user_id, feedback_type=feedback_type
                    )
                )
                return created, "created"
            if existing.feedback_type == feedback_type:
                return existing, "unchanged"
            updated = await feedback_repo.update_by_id(
                existing.id, feedback_type=feedback_type
            )
            return updated, "updated"

        feedback, outcome = await run_with_chain_retry(
            upsert,
            db_session=db_session,
            root_id=root_id,
            max_attempts=self.settings.REGENERATION_MAX_ATTEMPTS,
            backoff_base=self.settings.RETRY_BACKOFF_BASE,
            backoff_max=self.settings.RETRY_BACKOFF_MAX,
        )
        chain_logger.info(
            "feedback_upserted",
            root_id=root_id,
            message_id=message_id,
            feedback_id=feedback.id,
            user_id=user_id,
            feedback_type=feedback_type.value,
            outcome=outcome,
        )
        return FeedbackModel.from_entity(feedback)

    async def get_feedback(
        self, message_id: int, identity: Identity, *, db_session: AsyncSession
    ) -> Optional[FeedbackModel]:
        """The caller's feedback on the chain of ``message_id``, if any."""
        message, conversation = await self._load_bot_message(message_id, db_session)
        self.authorizer.ensure(identity, Action.VIEW_CONVERSATION, conversation)
        feedback = await FeedbackRepository(db_session).get_for_user(
            message.root_id, identity.user_id
        )
        return FeedbackModel.from_entity(feedback) if feedback else None

    async def remove_feedback(
        self, feedback_id: int, identity: Identity, *, db_session: AsyncSession
    ) -> None:
        """Delete a feedback record; missing and not-yours are reported apart."""
        repository = FeedbackRepository(db_session)
        feedback = await repository.get_by_id(feedback_id)
        if feedback is None:
            raise FeedbackNotFoundError(feedback_id)
        self.authorizer.ensure(identity, Action.DELETE_FEEDBACK, feedback)
        await repository.delete(feedback_id)
        await db_session.commit()
        logger.info(f"Feedback {feedback_id} removed by {identity.user_id}")

    async def remove_own_feedback(
        self, message_id: int, identity: Identity, *, db_session: AsyncSession
    ) -> None:
        """Delete the caller's feedback on the chain of ``message_id``."""
        message, _ = await self._load_bot_message(message_id, db_session)
        feedback = await FeedbackRepository(db_session).get_for_user(
            message.root_id, identity.user_id
        )
        if feedback is None:
            raise FeedbackNotFoundError(f"message {message_id}")
        await self.remove_feedback(feedback.id, identity, db_session=db_session)
