"""Attachment storage keyed by message id."""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from api.shared.exceptions import StorageError
from infra.resources import MinIOResource

logger = logging.getLogger("chat.messages.attachments")


@dataclass
class AttachmentUpload:
    filename: str
    content: bytes
    content_type: Optional[str] = None


def attachment_path(message_id: int, filename: str) -> str:
    return f"attachments/{message_id}/{filename}"


class AttachmentStore(Protocol):
    async def save(self, message_id: int, upload: AttachmentUpload) -> str:
        """Store the bytes and return the object key."""
        ...


class MinIOAttachmentStore:
    """Stores attachment bytes in the configured MinIO bucket."""

    def __init__(self, storage_client: MinIOResource):
        self.storage_client = storage_client

    async def save(self, message_id: int, upload: AttachmentUpload) -> str:
        object_name = attachment_path(message_id, upload.filename)
        try:
            await self.storage_client.put_object_bytes(
                self.storage_client.bucket_name,
                object_name,
                upload.content,
                content_type=upload.content_type or "application/octet-stream",
            )
        except RuntimeError as e:
            raise StorageError(str(e), {"object_name": object_name}) from e
        logger.info(f"Stored attachment {object_name} ({len(upload.content)} bytes)")
        return object_name
