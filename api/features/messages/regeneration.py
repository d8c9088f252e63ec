"""Regeneration: appending a new version to an existing bot-reply chain."""
import logging
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.ai_models.exceptions import AiModelNotFoundError
from api.features.ai_models.repositories.ai_model_repository import AiModelRepository
from api.features.conversations.repositories.conversation_repository import (
    ConversationRepository,
)
from api.features.messages.contention import run_with_chain_retry
from api.features.messages.entities.message import SenderType
from api.features.messages.exceptions import (
    MessageNotFoundError,
    RegenerationNotAllowedError,
)
from api.features.messages.generation import (
    GenerationBackend,
    GenerationContext,
    produce_reply,
)
from api.features.messages.models import MessageModel, RegenerationResult
from api.features.messages.pager import ConversationPager
from api.features.messages.repositories.feedback_repository import FeedbackRepository
from api.features.messages.repositories.message_repository import MessageRepository
from api.shared.auth import Action, Authorizer, Identity
from core.settings import ChatSettings

logger = logging.getLogger("chat.messages.regeneration")
chain_logger = structlog.get_logger("chat.chain")


class RegenerationEngine:
    """Creates new versions of bot replies.

    The slow generation call runs with no transaction open; only the final
    position allocation and insert happen under the chain lock, retried on
    contention.
    """

    def __init__(
        self,
        generation_backend: GenerationBackend,
        authorizer: Authorizer,
        chat_settings: ChatSettings,
    ):
        self.generation_backend = generation_backend
        self.authorizer = authorizer
        self.settings = chat_settings

    async def regenerate(
        self,
        reference_id: int,
        identity: Identity,
        *,
        db_session: AsyncSession,
        ai_model_id: Optional[int] = None,
    ) -> RegenerationResult:
        messages = MessageRepository(db_session)

        reference = await messages.get_by_id(reference_id)
        if reference is None:
            raise MessageNotFoundError(reference_id)
        conversation = await ConversationRepository(db_session).get_active(
            reference.conversation_id
        )
        if conversation is None:
            raise MessageNotFoundError(reference_id)
        if reference.sender != SenderType.BOT:
            raise RegenerationNotAllowedError(reference_id)
        self.authorizer.ensure(identity, Action.REGENERATE_MESSAGE, conversation)

        root_id = reference.root_id
        root = reference if reference.is_chain_root else await messages.get_by_id(root_id)
        if root is None:
            raise MessageNotFoundError(root_id)

        # Plain values only: a rollback in the retry loop expires ORM instances
        conversation_id = root.conversation_id
        parent_id = root.parent_id
        model_id = ai_model_id if ai_model_id is not None else reference.ai_model_id

        model = await AiModelRepository(db_session).get_by_id(model_id) if model_id else None
        if ai_model_id is not None and model is None:
            raise AiModelNotFoundError(ai_model_id)
        model_name = model.name if model else ""

        parent = await messages.get_by_id(parent_id) if parent_id else None
        history = await ConversationPager(db_session).context_window(
            conversation_id, self.settings.HISTORY_WINDOW, until=parent
        )
        context = GenerationContext.from_messages(
            history,
            model_name=model_name,
            attachment_count=parent.attachment_count if parent else 0,
        )
        await db_session.commit()

        content, status = await produce_reply(
            self.generation_backend, context, root_id=root_id
        )

        async def append():
            message = await messages.append_version(
                root_id,
                conversation_id=conversation_id,
                parent_id=parent_id,
                sender=SenderType.BOT,
                content=content,
                ai_model_id=model_id,
                status=status,
            )
            await ConversationRepository(db_session).touch(conversation_id)
            return message

        message = await run_with_chain_retry(
            append,
            db_session=db_session,
            root_id=root_id,
            max_attempts=self.settings.REGENERATION_MAX_ATTEMPTS,
            backoff_base=self.settings.RETRY_BACKOFF_BASE,
            backoff_max=self.settings.RETRY_BACKOFF_MAX,
        )
        chain_logger.info(
            "chain_version_allocated",
            root_id=root_id,
            message_id=message.id,
            version_position=message.version_position,
            status=status.value,
        )

        versions = await messages.get_chain_versions(root_id)
        feedback = await FeedbackRepository(db_session).get_for_user(
            root_id, identity.user_id
        )
        result = MessageModel.from_entity(message, versions=versions, feedback=feedback)
        logger.info(
            f"Regenerated chain {root_id}: message {message.id} at position {message.version_position}"
        )
        return RegenerationResult(message=result, versions=result.versions or [])
