"""Entity registry to ensure SQLAlchemy loads all table metadata.

Import all entity modules here so Alembic autogenerate and test schema
creation can discover them.
"""
# Import base first to expose BaseEntity.metadata
from api.shared.entities.base import BaseEntity  # noqa: F401

# Feature: AI models
from api.features.ai_models.entities.ai_model import AiModel  # noqa: F401
from api.features.ai_models.entities.user_setting import UserSetting  # noqa: F401

# Feature: Conversations
from api.features.conversations.entities.conversation import Conversation  # noqa: F401

# Feature: Messages
from api.features.messages.entities.message import Message  # noqa: F401
from api.features.messages.entities.feedback import MessageFeedback  # noqa: F401
