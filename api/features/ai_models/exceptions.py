"""Exceptions for the AI models feature."""
from api.shared.exceptions import NotFoundError


class AiModelNotFoundError(NotFoundError):
    def __init__(self, ai_model_id: int):
        super().__init__("AiModel", ai_model_id)
