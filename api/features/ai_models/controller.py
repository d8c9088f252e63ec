"""Controller for the AI models feature."""
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.ai_models.models import AiModelModel
from api.features.ai_models.service import AiModelService


class AiModelController:
    def __init__(self, ai_model_service: AiModelService):
        self.ai_model_service = ai_model_service

    async def list_models(self, *, db_session: AsyncSession) -> List[AiModelModel]:
        return await self.ai_model_service.list_models(db_session=db_session)
