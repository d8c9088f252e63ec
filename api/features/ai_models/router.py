"""Router for the AI models feature."""
from typing import List

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.ai_models.controller import AiModelController
from api.features.ai_models.models import AiModelModel
from api.shared.auth import Identity, get_identity
from api.shared.db import get_db_session
from api.shared.response import ResponseModel
from di.container import ApplicationContainer as DependencyContainer

router = APIRouter()


@router.get("", response_model=ResponseModel[List[AiModelModel]])
@inject
async def list_ai_models(
    _identity: Identity = Depends(get_identity),
    controller: AiModelController = Depends(
        Provide[DependencyContainer.controllers.ai_model_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """List the available generation models."""
    result = await controller.list_models(db_session=db_session)
    return ResponseModel.success(data=result, message="AI models retrieved successfully")
