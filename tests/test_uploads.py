"""Multipart upload reading and its limits."""
from io import BytesIO

import pytest
from fastapi import UploadFile

from api.features.messages.controller import read_uploads
from api.features.messages.exceptions import AttachmentLimitError


def _upload(name, data, size=None):
    return UploadFile(file=BytesIO(data), filename=name, size=size)


async def test_uploads_are_read_and_empty_parts_skipped():
    uploads = await read_uploads(
        [_upload("a.txt", b"alpha"), _upload("", b"")], max_count=5, max_size_kb=1
    )

    assert [(u.filename, u.content) for u in uploads] == [("a.txt", b"alpha")]


async def test_declared_size_is_rejected_before_reading():
    upload = _upload("big.bin", b"x" * 4096, size=4096)

    with pytest.raises(AttachmentLimitError):
        await read_uploads([upload], max_count=5, max_size_kb=1)
    assert upload.file.tell() == 0


async def test_reading_stops_past_the_limit_when_size_is_unknown():
    upload = _upload("big.bin", b"x" * 10 * 1024)

    with pytest.raises(AttachmentLimitError):
        await read_uploads([upload], max_count=5, max_size_kb=1)
    assert upload.file.tell() == 1024 + 1


async def test_too_many_parts_are_rejected_before_reading():
    uploads = [_upload(f"f{i}.txt", b"x") for i in range(3)]

    with pytest.raises(AttachmentLimitError):
        await read_uploads(uploads, max_count=2, max_size_kb=1)
    assert all(u.file.tell() == 0 for u in uploads)


async def test_oversized_attachment_is_rejected_over_http(client, ai_model, chat_settings):
    chat_settings.MAX_ATTACHMENT_SIZE_KB = 1
    created = await client.post("/api/v1/conversations", json={"title": "Uploads"})
    conversation_id = created.json()["data"]["id"]

    response = await client.post(
        f"/api/v1/conversations/{conversation_id}/messages",
        data={"content": "see attached", "ai_model_id": str(ai_model.id)},
        files=[("attachments", ("big.bin", b"x" * 4096, "application/octet-stream"))],
    )

    assert response.status_code == 422
    assert response.json()["error"] == "VALIDATION_ERROR"
    detail = await client.get(f"/api/v1/conversations/{conversation_id}")
    assert detail.json()["data"]["total_messages"] == 0
