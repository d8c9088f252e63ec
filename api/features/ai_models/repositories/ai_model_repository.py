"""AI model and user setting repositories."""
from typing import List, Optional

from sqlalchemy import select

from api.features.ai_models.entities.ai_model import AiModel
from api.features.ai_models.entities.user_setting import UserSetting
from api.shared.base import BaseRepository


class AiModelRepository(BaseRepository[AiModel]):
    model = AiModel

    async def list_all(self) -> List[AiModel]:
        result = await self.session.execute(select(AiModel).order_by(AiModel.name.asc()))
        return list(result.scalars().all())


class UserSettingRepository(BaseRepository[UserSetting]):
    model = UserSetting

    async def get_for_user(self, user_id: str) -> Optional[UserSetting]:
        entities = await self.get_by_field("user_id", user_id, limit=1)
        return entities[0] if entities else None

    async def preferred_model_id(self, user_id: str) -> Optional[int]:
        setting = await self.get_for_user(user_id)
        return setting.preferred_ai_model_id if setting else None
