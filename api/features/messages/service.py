"""Service layer for the Messages feature."""
import logging
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.ai_models.entities.ai_model import AiModel
from api.features.ai_models.exceptions import AiModelNotFoundError
from api.features.ai_models.repositories.ai_model_repository import (
    AiModelRepository,
    UserSettingRepository,
)
from api.features.conversations.entities.conversation import Conversation
from api.features.conversations.exceptions import ConversationNotFoundError
from api.features.conversations.repositories.conversation_repository import (
    ConversationRepository,
)
from api.features.messages.attachments import AttachmentStore, AttachmentUpload
from api.features.messages.entities.message import MessageStatus, SenderType
from api.features.messages.exceptions import (
    AttachmentLimitError,
    MessageNotFoundError,
    NoAiModelError,
)
from api.features.messages.generation import (
    GenerationBackend,
    GenerationContext,
    produce_reply,
)
from api.features.messages.models import (
    MessageModel,
    MessageVersionModel,
    SendMessageResult,
)
from api.features.messages.pager import ConversationPager
from api.features.messages.repositories.message_repository import MessageRepository
from api.shared.auth import Action, Authorizer, Identity
from api.shared.exceptions import InvalidOperationError
from core.settings import ChatSettings

logger = logging.getLogger("chat.messages.service")


class MessageService:
    """Message send flow and chain listing."""

    def __init__(
        self,
        generation_backend: GenerationBackend,
        attachment_store: AttachmentStore,
        authorizer: Authorizer,
        chat_settings: ChatSettings,
    ):
        self.generation_backend = generation_backend
        self.attachment_store = attachment_store
        self.authorizer = authorizer
        self.settings = chat_settings

    def _check_attachments(self, attachments: Sequence[AttachmentUpload]) -> None:
        if len(attachments) > self.settings.MAX_ATTACHMENTS:
            raise AttachmentLimitError(
                f"At most {self.settings.MAX_ATTACHMENTS} attachments are allowed",
                {"count": len(attachments)},
            )
        max_bytes = self.settings.MAX_ATTACHMENT_SIZE_KB * 1024
        for upload in attachments:
            if len(upload.content) > max_bytes:
                raise AttachmentLimitError(
                    f"Attachment '{upload.filename}' exceeds {self.settings.MAX_ATTACHMENT_SIZE_KB} KB",
                    {"filename": upload.filename, "size": len(upload.content)},
                )

    async def _resolve_model(
        self, ai_model_id: Optional[int], identity: Identity, db_session: AsyncSession
    ) -> AiModel:
        """Requested model, else the user's preferred one."""
        model_id = ai_model_id
        if model_id is None:
            model_id = await UserSettingRepository(db_session).preferred_model_id(
                identity.user_id
            )
        if model_id is None:
            raise NoAiModelError(identity.user_id)
        model = await AiModelRepository(db_session).get_by_id(model_id)
        if model is None:
            raise AiModelNotFoundError(model_id)
        return model

    async def send_message(
        self,
        conversation_id: int,
        identity: Identity,
        content: str,
        *,
        db_session: AsyncSession,
        ai_model_id: Optional[int] = None,
        attachments: Sequence[AttachmentUpload] = (),
    ) -> SendMessageResult:
        """Store a user turn, generate the reply and store it as a new chain root."""
        conversations = ConversationRepository(db_session)
        conversation = await conversations.get_active(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        self.authorizer.ensure(identity, Action.SEND_MESSAGE, conversation)
        return await self._send(
            conversation, identity, content, db_session, ai_model_id, attachments
        )

    async def send_to_new_conversation(
        self,
        identity: Identity,
        content: str,
        *,
        db_session: AsyncSession,
        title: Optional[str] = None,
        ai_model_id: Optional[int] = None,
        attachments: Sequence[AttachmentUpload] = (),
    ) -> SendMessageResult:
        """Create a conversation for the caller, then send into it."""
        self._check_attachments(attachments)
        await self._resolve_model(ai_model_id, identity, db_session)
        conversation = await ConversationRepository(db_session).create(
            Conversation(
                user_id=identity.user_id,
                title=title or self.settings.DEFAULT_CONVERSATION_TITLE,
            )
        )
        await db_session.commit()
        logger.info(f"Conversation created: {conversation.id}")
        return await self._send(
            conversation, identity, content, db_session, ai_model_id, attachments
        )

    async def _send(
        self,
        conversation: Conversation,
        identity: Identity,
        content: str,
        db_session: AsyncSession,
        ai_model_id: Optional[int],
        attachments: Sequence[AttachmentUpload],
    ) -> SendMessageResult:
        self._check_attachments(attachments)
        model = await self._resolve_model(ai_model_id, identity, db_session)
        model_id = model.id
        model_name = model.name

        conversation_id = conversation.id
        title = conversation.title
        messages = MessageRepository(db_session)
        conversations = ConversationRepository(db_session)

        user_message = await messages.create_message(
            conversation_id=conversation_id,
            sender=SenderType.USER,
            content=content,
            ai_model_id=model_id,
            status=MessageStatus.COMPLETED,
            attachment_count=len(attachments),
        )
        try:
            for upload in attachments:
                await self.attachment_store.save(user_message.id, upload)
        except Exception:
            await db_session.rollback()
            raise
        await conversations.touch(conversation_id)
        history = await ConversationPager(db_session).context_window(
            conversation_id, self.settings.HISTORY_WINDOW, until=user_message
        )
        await db_session.commit()

        reply, status = await produce_reply(
            self.generation_backend,
            GenerationContext.from_messages(
                history, model_name=model_name, attachment_count=len(attachments)
            ),
            conversation_id=conversation_id,
            parent_id=user_message.id,
        )

        bot_message = await messages.create_message(
            conversation_id=conversation_id,
            parent_id=user_message.id,
            sender=SenderType.BOT,
            content=reply,
            ai_model_id=model_id,
            status=status,
        )
        await conversations.touch(conversation_id)
        await db_session.commit()
        logger.info(
            f"Message {user_message.id} answered by {bot_message.id} ({status.value}) "
            f"in conversation {conversation_id}"
        )

        return SendMessageResult(
            conversation_id=conversation_id,
            title=title,
            user_message=MessageModel.from_entity(user_message),
            bot_message=MessageModel.from_entity(bot_message, versions=[bot_message]),
        )

    async def list_versions(
        self, message_id: int, identity: Identity, *, db_session: AsyncSession
    ) -> List[MessageVersionModel]:
        """Every version of the chain ``message_id`` belongs to, ascending."""
        messages = MessageRepository(db_session)
        message = await messages.get_by_id(message_id)
        if message is None:
            raise MessageNotFoundError(message_id)
        conversation = await ConversationRepository(db_session).get_active(
            message.conversation_id
        )
        if conversation is None:
            raise MessageNotFoundError(message_id)
        if message.sender != SenderType.BOT:
            raise InvalidOperationError(
                f"Message '{message_id}' is not a bot reply and has no versions",
                {"message_id": message_id},
            )
        self.authorizer.ensure(identity, Action.VIEW_CONVERSATION, conversation)
        versions = await messages.get_chain_versions(message.root_id)
        return [MessageVersionModel.from_entity(v) for v in versions]
