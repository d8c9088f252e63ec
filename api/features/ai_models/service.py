"""Service layer for the AI models feature."""
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.ai_models.models import AiModelModel
from api.features.ai_models.repositories.ai_model_repository import AiModelRepository


class AiModelService:
    async def list_models(self, *, db_session: AsyncSession) -> List[AiModelModel]:
        entities = await AiModelRepository(db_session).list_all()
        return [AiModelModel.from_entity(e) for e in entities]
