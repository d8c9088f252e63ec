"""Controller for the Messages feature."""
import logging
from typing import List, Optional, Sequence

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.messages.attachments import AttachmentUpload
from api.features.messages.dtos import (
    FeedbackRequest,
    FeedbackResponse,
    NewConversationMessageRequest,
    RegenerateRequest,
    RegenerateResponse,
    SendMessageRequest,
    SendMessageResponse,
    VersionListResponse,
)
from api.features.messages.exceptions import AttachmentLimitError
from api.features.messages.feedback import FeedbackAttributor
from api.features.messages.regeneration import RegenerationEngine
from api.features.messages.service import MessageService
from api.shared.auth import Identity

logger = logging.getLogger(__name__)


async def read_uploads(
    files: Optional[Sequence[UploadFile]], *, max_count: int, max_size_kb: int
) -> List[AttachmentUpload]:
    """Read multipart uploads into memory; empty parts are skipped.

    Limits are enforced before and while reading, so an oversized part is
    never buffered beyond ``max_size_kb`` plus one byte.
    """
    parts = [file for file in files or [] if file.filename]
    if len(parts) > max_count:
        raise AttachmentLimitError(
            f"At most {max_count} attachments are allowed", {"count": len(parts)}
        )
    max_bytes = max_size_kb * 1024
    uploads = []
    for file in parts:
        if file.size is not None and file.size > max_bytes:
            raise AttachmentLimitError(
                f"Attachment '{file.filename}' exceeds {max_size_kb} KB",
                {"filename": file.filename, "size": file.size},
            )
        content = await file.read(max_bytes + 1)
        if len(content) > max_bytes:
            raise AttachmentLimitError(
                f"Attachment '{file.filename}' exceeds {max_size_kb} KB",
                {"filename": file.filename},
            )
        uploads.append(
            AttachmentUpload(
                filename=file.filename, content=content, content_type=file.content_type
            )
        )
    return uploads


class MessageController:
    """Controller for message operations - orchestrates the message components."""

    def __init__(
        self,
        message_service: MessageService,
        regeneration_engine: RegenerationEngine,
        feedback_attributor: FeedbackAttributor,
    ):
        self.message_service = message_service
        self.regeneration_engine = regeneration_engine
        self.feedback_attributor = feedback_attributor

    async def _read_uploads(
        self, files: Optional[Sequence[UploadFile]]
    ) -> List[AttachmentUpload]:
        settings = self.message_service.settings
        return await read_uploads(
            files,
            max_count=settings.MAX_ATTACHMENTS,
            max_size_kb=settings.MAX_ATTACHMENT_SIZE_KB,
        )

    async def send_message(
        self,
        conversation_id: int,
        request: SendMessageRequest,
        identity: Identity,
        *,
        files: Optional[Sequence[UploadFile]] = None,
        db_session: AsyncSession,
    ) -> SendMessageResponse:
        result = await self.message_service.send_message(
            conversation_id,
            identity,
            request.content,
            ai_model_id=request.ai_model_id,
            attachments=await self._read_uploads(files),
            db_session=db_session,
        )
        return SendMessageResponse(**result.model_dump())

    async def send_to_new_conversation(
        self,
        request: NewConversationMessageRequest,
        identity: Identity,
        *,
        files: Optional[Sequence[UploadFile]] = None,
        db_session: AsyncSession,
    ) -> SendMessageResponse:
        result = await self.message_service.send_to_new_conversation(
            identity,
            request.content,
            title=request.title,
            ai_model_id=request.ai_model_id,
            attachments=await self._read_uploads(files),
            db_session=db_session,
        )
        return SendMessageResponse(**result.model_dump())

    async def regenerate(
        self,
        message_id: int,
        request: RegenerateRequest,
        identity: Identity,
        *,
        db_session: AsyncSession,
    ) -> RegenerateResponse:
        result = await self.regeneration_engine.regenerate(
            message_id, identity, ai_model_id=request.ai_model_id, db_session=db_session
        )
        return RegenerateResponse(message=result.message, versions=result.versions)

    async def list_versions(
        self, message_id: int, identity: Identity, *, db_session: AsyncSession
    ) -> VersionListResponse:
        versions = await self.message_service.list_versions(
            message_id, identity, db_session=db_session
        )
        root_id = versions[0].message_id if versions else message_id
        return VersionListResponse(message_id=message_id, root_id=root_id, versions=versions)

    async def set_feedback(
        self,
        message_id: int,
        request: FeedbackRequest,
        identity: Identity,
        *,
        db_session: AsyncSession,
    ) -> FeedbackResponse:
        feedback = await self.feedback_attributor.set_feedback(
            message_id, identity, request.feedback_type, db_session=db_session
        )
        return FeedbackResponse(feedback=feedback)

    async def get_feedback(
        self, message_id: int, identity: Identity, *, db_session: AsyncSession
    ) -> FeedbackResponse:
        feedback = await self.feedback_attributor.get_feedback(
            message_id, identity, db_session=db_session
        )
        return FeedbackResponse(feedback=feedback)

    async def remove_own_feedback(
        self, message_id: int, identity: Identity, *, db_session: AsyncSession
    ) -> None:
        await self.feedback_attributor.remove_own_feedback(
            message_id, identity, db_session=db_session
        )

    async def remove_feedback(
        self, feedback_id: int, identity: Identity, *, db_session: AsyncSession
    ) -> None:
        await self.feedback_attributor.remove_feedback(
            feedback_id, identity, db_session=db_session
        )
