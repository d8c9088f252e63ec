from __future__ import annotations

import structlog
from dependency_injector import containers, providers

from core.settings import SETTINGS
from infra.resources import DatabaseResource, MinIOResource


logger = structlog.get_logger("chat")


class InfrastructureContainer(containers.DeclarativeContainer):
    config = providers.Configuration()
    settings = providers.Object(SETTINGS)
    logger = providers.Object(logger)

    # Database
    database = providers.Singleton(
        DatabaseResource,
        database_url=str(SETTINGS.DATABASE.DATABASE_URL),
        lock_timeout=SETTINGS.DATABASE.LOCK_TIMEOUT,
        statement_timeout=SETTINGS.DATABASE.STATEMENT_TIMEOUT,
    )

    # MinIO
    minio_client = providers.Singleton(
        MinIOResource,
        endpoint=SETTINGS.MINIO.MINIO_ENDPOINT,
        access_key=SETTINGS.MINIO.MINIO_ACCESS_KEY,
        secret_key=SETTINGS.MINIO.MINIO_SECRET_KEY.get_secret_value(),
        bucket_name=SETTINGS.MINIO.MINIO_BUCKET,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Application services - depends on infrastructure."""

    infrastructure = providers.DependenciesContainer()

    chat_settings = providers.Object(SETTINGS.CHAT)

    # Boundary collaborators
    authorizer = providers.Singleton(
        "api.shared.auth.PermissionAuthorizer",
    )

    generation_backend = providers.Singleton(
        "api.features.messages.generation.build_generation_backend",
        openai_settings=SETTINGS.OPENAI,
    )

    attachment_store = providers.Singleton(
        "api.features.messages.attachments.MinIOAttachmentStore",
        storage_client=infrastructure.minio_client,
    )

    # Services
    ai_model_service = providers.Factory(
        "api.features.ai_models.service.AiModelService",
    )

    conversation_service = providers.Factory(
        "api.features.conversations.service.ConversationService",
        authorizer=authorizer,
        chat_settings=chat_settings,
    )

    message_service = providers.Factory(
        "api.features.messages.service.MessageService",
        generation_backend=generation_backend,
        attachment_store=attachment_store,
        authorizer=authorizer,
        chat_settings=chat_settings,
    )

    regeneration_engine = providers.Factory(
        "api.features.messages.regeneration.RegenerationEngine",
        generation_backend=generation_backend,
        authorizer=authorizer,
        chat_settings=chat_settings,
    )

    feedback_attributor = providers.Factory(
        "api.features.messages.feedback.FeedbackAttributor",
        authorizer=authorizer,
        chat_settings=chat_settings,
    )


class ControllerContainer(containers.DeclarativeContainer):
    """Controller-specific dependencies."""

    services = providers.DependenciesContainer()

    ai_model_controller = providers.Factory(
        "api.features.ai_models.controller.AiModelController",
        ai_model_service=services.ai_model_service,
    )

    conversation_controller = providers.Factory(
        "api.features.conversations.controller.ConversationController",
        conversation_service=services.conversation_service,
    )

    message_controller = providers.Factory(
        "api.features.messages.controller.MessageController",
        message_service=services.message_service,
        regeneration_engine=services.regeneration_engine,
        feedback_attributor=services.feedback_attributor,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Main application container composing all sub-containers."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "api.main",
            "api.shared.db",
            "api.features.ai_models.router",
            "api.features.conversations.router",
            "api.features.messages.router",
        ]
    )

    infrastructure = providers.Container(InfrastructureContainer)
    services = providers.Container(ServiceContainer, infrastructure=infrastructure)
    controllers = providers.Container(ControllerContainer, services=services)
