"""Models for the AI models feature."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from api.features.ai_models.entities.ai_model import AiModel


class AiModelModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="AI model identifier")
    name: str = Field(description="Model name passed to the generation backend")
    description: Optional[str] = Field(default=None, description="Human readable description")

    @classmethod
    def from_entity(cls, entity: AiModel) -> "AiModelModel":
        return cls.model_validate(entity)
