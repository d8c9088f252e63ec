"""Shared test fixtures."""
from typing import Dict

import pytest
from dependency_injector import providers
from httpx import ASGITransport, AsyncClient

from api.features.ai_models.entities.ai_model import AiModel
from api.features.conversations.entities.conversation import Conversation
from api.features.conversations.service import ConversationService
from api.features.messages.attachments import AttachmentUpload
from api.features.messages.feedback import FeedbackAttributor
from api.features.messages.generation import GenerationContext
from api.features.messages.regeneration import RegenerationEngine
from api.features.messages.service import MessageService
from api.shared.auth import Identity, PermissionAuthorizer
from api.shared.entities.registry import BaseEntity
from api.shared.exceptions import UpstreamGenerationError
from core.settings import ChatSettings
from infra.resources import DatabaseResource


class FakeGenerationBackend:
    """Numbered replies; flip ``fail`` to simulate an upstream outage."""

    def __init__(self):
        self.calls = []
        self.fail = False

    async def generate(self, context: GenerationContext) -> str:
        self.calls.append(context)
        if self.fail:
            raise UpstreamGenerationError("fake", "backend unavailable")
        return f"reply {len(self.calls)}"


class InMemoryAttachmentStore:
    def __init__(self):
        self.objects: Dict[str, bytes] = {}

    async def save(self, message_id: int, upload: AttachmentUpload) -> str:
        key = f"attachments/{message_id}/{upload.filename}"
        self.objects[key] = upload.content
        return key


@pytest.fixture
def chat_settings():
    return ChatSettings(
        REGENERATION_MAX_ATTEMPTS=10,
        RETRY_BACKOFF_BASE=0.01,
        RETRY_BACKOFF_MAX=0.05,
        DEFAULT_PAGE_SIZE=20,
        MAX_PAGE_SIZE=100,
    )


@pytest.fixture
async def database(tmp_path):
    """A file-backed SQLite database so several sessions can race each other."""
    resource = DatabaseResource(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await resource.init()
    async with resource.engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)
    yield resource
    await resource.shutdown()


@pytest.fixture
async def session(database):
    async with database.get_session() as db_session:
        yield db_session


@pytest.fixture
async def ai_model(session):
    model = AiModel(name="test-model", description="Model used in tests")
    session.add(model)
    await session.commit()
    return model


@pytest.fixture
def generator():
    return FakeGenerationBackend()


@pytest.fixture
def attachment_store():
    return InMemoryAttachmentStore()


@pytest.fixture
def authorizer():
    return PermissionAuthorizer()


@pytest.fixture
def alice():
    return Identity(user_id="alice")


@pytest.fixture
def bob():
    return Identity(user_id="bob")


@pytest.fixture
def admin():
    return Identity(
        user_id="admin",
        permissions=frozenset(
            {
                "view any conversation",
                "regenerate any message",
                "create any feedback",
                "delete any feedback",
            }
        ),
    )


@pytest.fixture
def message_service(generator, attachment_store, authorizer, chat_settings):
    return MessageService(generator, attachment_store, authorizer, chat_settings)


@pytest.fixture
def regeneration_engine(generator, authorizer, chat_settings):
    return RegenerationEngine(generator, authorizer, chat_settings)


@pytest.fixture
def feedback_attributor(authorizer, chat_settings):
    return FeedbackAttributor(authorizer, chat_settings)


@pytest.fixture
def conversation_service(authorizer, chat_settings):
    return ConversationService(authorizer, chat_settings)


@pytest.fixture
async def conversation(session, alice):
    entity = Conversation(user_id=alice.user_id, title="Trip planning")
    session.add(entity)
    await session.commit()
    return entity


@pytest.fixture
def send(message_service, session, alice, ai_model):
    """Send one user turn into a conversation and return the result."""

    async def _send(conversation_id: int, content: str = "hello", identity=None):
        return await message_service.send_message(
            conversation_id,
            identity or alice,
            content,
            ai_model_id=ai_model.id,
            db_session=session,
        )

    return _send


@pytest.fixture
async def app(database, generator, attachment_store, chat_settings):
    from api.main import create_fastapi_app

    application = create_fastapi_app()
    container = application.container
    container.infrastructure.database.override(providers.Object(database))
    container.services.generation_backend.override(providers.Object(generator))
    container.services.attachment_store.override(providers.Object(attachment_store))
    container.services.chat_settings.override(providers.Object(chat_settings))
    yield application
    container.unwire()


@pytest.fixture
async def client(app):
    """Async test client for the FastAPI app, authenticated as alice."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-User-Id": "alice"},
    ) as ac:
        yield ac
