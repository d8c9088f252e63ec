"""Router for the Messages feature.

Domain errors propagate to the application exception handler, which maps
them to HTTP status codes.
"""
import logging
from typing import List, Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.messages.controller import MessageController
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
from api.shared.auth import Identity, get_identity
from api.shared.db import get_db_session
from api.shared.response import ResponseModel
from di.container import ApplicationContainer as DependencyContainer

router = APIRouter()
logger = logging.getLogger("chat.messages.router")


@router.post(
    "/conversations/new-message",
    response_model=ResponseModel[SendMessageResponse],
    status_code=201,
    tags=["Conversations"],
)
@inject
async def send_to_new_conversation(
    content: str = Form(...),
    title: Optional[str] = Form(None),
    ai_model_id: Optional[int] = Form(None),
    attachments: Optional[List[UploadFile]] = File(None),
    identity: Identity = Depends(get_identity),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Create a conversation and send the first message into it."""
    request = NewConversationMessageRequest(
        content=content, title=title, ai_model_id=ai_model_id
    )
    result = await controller.send_to_new_conversation(
        request, identity, files=attachments, db_session=db_session
    )
    return ResponseModel.success(data=result, message="Message sent successfully")


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=ResponseModel[SendMessageResponse],
    status_code=201,
    tags=["Conversations"],
)
@inject
async def send_message(
    conversation_id: int,
    content: str = Form(...),
    ai_model_id: Optional[int] = Form(None),
    attachments: Optional[List[UploadFile]] = File(None),
    identity: Identity = Depends(get_identity),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Send a user message and receive the bot reply."""
    request = SendMessageRequest(content=content, ai_model_id=ai_model_id)
    result = await controller.send_message(
        conversation_id, request, identity, files=attachments, db_session=db_session
    )
    return ResponseModel.success(data=result, message="Message sent successfully")


@router.post(
    "/messages/{message_id}/regenerate",
    response_model=ResponseModel[RegenerateResponse],
    status_code=201,
)
@inject
async def regenerate_message(
    message_id: int,
    request: Optional[RegenerateRequest] = None,
    identity: Identity = Depends(get_identity),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Generate a new version of a bot reply."""
    result = await controller.regenerate(
        message_id, request or RegenerateRequest(), identity, db_session=db_session
    )
    return ResponseModel.success(data=result, message="Message regenerated successfully")


@router.get(
    "/messages/{message_id}/versions",
    response_model=ResponseModel[VersionListResponse],
)
@inject
async def list_versions(
    message_id: int,
    identity: Identity = Depends(get_identity),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """List every version of the chain a bot reply belongs to."""
    result = await controller.list_versions(message_id, identity, db_session=db_session)
    return ResponseModel.success(data=result, message="Versions retrieved successfully")


@router.get(
    "/messages/{message_id}/feedback",
    response_model=ResponseModel[FeedbackResponse],
)
@inject
async def get_feedback(
    message_id: int,
    identity: Identity = Depends(get_identity),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    result = await controller.get_feedback(message_id, identity, db_session=db_session)
    return ResponseModel.success(data=result, message="Feedback retrieved successfully")


@router.put(
    "/messages/{message_id}/feedback",
    response_model=ResponseModel[FeedbackResponse],
)
@inject
async def set_feedback(
    message_id: int,
    request: FeedbackRequest,
    identity: Identity = Depends(get_identity),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Like or dislike a bot reply; stored once per chain and user."""
    result = await controller.set_feedback(
        message_id, request, identity, db_session=db_session
    )
    return ResponseModel.success(data=result, message="Feedback saved successfully")


@router.delete(
    "/messages/{message_id}/feedback",
    response_model=ResponseModel[None],
)
@inject
async def remove_own_feedback(
    message_id: int,
    identity: Identity = Depends(get_identity),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    await controller.remove_own_feedback(message_id, identity, db_session=db_session)
    return ResponseModel.success(message="Feedback removed successfully")


@router.delete(
    "/feedback/{feedback_id}",
    response_model=ResponseModel[None],
)
@inject
async def remove_feedback(
    feedback_id: int,
    identity: Identity = Depends(get_identity),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Delete a feedback record by id."""
    await controller.remove_feedback(feedback_id, identity, db_session=db_session)
    return ResponseModel.success(message="Feedback removed successfully")
