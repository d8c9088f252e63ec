"""Router for the Conversations feature."""
import logging
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversations.controller import ConversationController
from api.features.conversations.dtos import (
    ConversationDetailResponse,
    ConversationListResponse,
    CreateConversationRequest,
    UpdateConversationRequest,
)
from api.features.conversations.models import ConversationModel
from api.shared.auth import Identity, get_identity
from api.shared.db import get_db_session
from api.shared.response import ResponseModel
from di.container import ApplicationContainer as DependencyContainer

router = APIRouter()
logger = logging.getLogger("chat.conversations.router")


@router.get("", response_model=ResponseModel[ConversationListResponse])
@inject
async def list_conversations(
    title: Optional[str] = Query(None, description="Partial title match"),
    sort: str = Query(
        "-updated_at",
        pattern="^-?(created_at|updated_at)$",
        description="Sort field, '-' prefix for descending",
    ),
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=100),
    identity: Identity = Depends(get_identity),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """List the caller's conversations."""
    result = await controller.list_conversations(
        identity,
        title=title,
        sort=sort,
        page=page,
        per_page=per_page,
        db_session=db_session,
    )
    return ResponseModel.success(data=result, message="Conversations retrieved successfully")


@router.post("", response_model=ResponseModel[ConversationModel], status_code=201)
@inject
async def create_conversation(
    request: CreateConversationRequest,
    identity: Identity = Depends(get_identity),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    result = await controller.create_conversation(request, identity, db_session=db_session)
    return ResponseModel.success(data=result, message="Conversation created successfully")


@router.get(
    "/{conversation_id}", response_model=ResponseModel[ConversationDetailResponse]
)
@inject
async def get_conversation(
    conversation_id: int,
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=100),
    include_versions: bool = Query(True, description="Attach version lists to bot replies"),
    identity: Identity = Depends(get_identity),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Conversation with one page of its visible messages."""
    result = await controller.get_conversation(
        conversation_id,
        identity,
        page=page,
        per_page=per_page,
        include_versions=include_versions,
        db_session=db_session,
    )
    return ResponseModel.success(data=result, message="Conversation retrieved successfully")


@router.patch("/{conversation_id}", response_model=ResponseModel[ConversationModel])
@inject
async def rename_conversation(
    conversation_id: int,
    request: UpdateConversationRequest,
    identity: Identity = Depends(get_identity),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    result = await controller.rename_conversation(
        conversation_id, request, identity, db_session=db_session
    )
    return ResponseModel.success(data=result, message="Conversation updated successfully")


@router.delete("/{conversation_id}", response_model=ResponseModel[None])
@inject
async def delete_conversation(
    conversation_id: int,
    identity: Identity = Depends(get_identity),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    await controller.delete_conversation(conversation_id, identity, db_session=db_session)
    return ResponseModel.success(message="Conversation deleted successfully")


@router.post(
    "/{conversation_id}/restore", response_model=ResponseModel[ConversationModel]
)
@inject
async def restore_conversation(
    conversation_id: int,
    identity: Identity = Depends(get_identity),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    result = await controller.restore_conversation(
        conversation_id, identity, db_session=db_session
    )
    return ResponseModel.success(data=result, message="Conversation restored successfully")
