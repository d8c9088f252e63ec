from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, PostgresDsn, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CustomSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


class AppSettings(CustomSettings):
    ENVIRONMENT: Literal["local", "dev", "prod", "test"] = Field(default="local")
    LOG_LEVEL: str = Field(default="INFO")
    JSON_LOGS: bool = Field(default=True)


class PgDbSettings(CustomSettings):
    POSTGRES_ENGINE: str = Field(default="postgresql+asyncpg")
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: SecretStr = Field(default="postgres")
    POSTGRES_DB: str = Field(default="chat")
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)
    DATABASE_URL: PostgresDsn | str = Field(default="")
    LOCK_TIMEOUT: str = Field(default="4s")
    STATEMENT_TIMEOUT: str = Field(default="8s")

    @model_validator(mode="before")
    def validate_postgres_dsn(cls, data: dict):
        if isinstance(data, dict) and not data.get("DATABASE_URL"):
            _built_uri = PostgresDsn.build(
                scheme=data.get("POSTGRES_ENGINE", "postgresql+asyncpg"),
                username=data.get("POSTGRES_USER", "postgres"),
                password=data.get("POSTGRES_PASSWORD", "postgres"),
                host=data.get("POSTGRES_HOST", "localhost"),
                port=int(data.get("POSTGRES_PORT", 5432)),
                path=data.get("POSTGRES_DB", "chat"),
            ).unicode_string()
            data["DATABASE_URL"] = _built_uri
        return data


class MinIOSettings(CustomSettings):
    MINIO_ENDPOINT: str = Field(default="http://localhost:9000")
    MINIO_ACCESS_KEY: str = Field(default="minioadmin")
    MINIO_SECRET_KEY: SecretStr = Field(default="minioadmin")
    MINIO_BUCKET: str = Field(default="chat-attachments")


class OpenAISettings(CustomSettings):
    OPENAI_API_KEY: SecretStr = Field(default="")
    USE_OPENAI: bool = Field(default=True)
    OPENAI_MODEL: str = Field(default="gpt-4o-mini")
    OPENAI_TIMEOUT: float = Field(default=60.0)


class ChatSettings(CustomSettings):
    """Conversation, regeneration and paging knobs.

    Set via env vars:
    - REGENERATION_MAX_ATTEMPTS
    - RETRY_BACKOFF_BASE / RETRY_BACKOFF_MAX (seconds)
    - DEFAULT_PAGE_SIZE / MAX_PAGE_SIZE
    - CONVERSATION_PAGE_SIZE
    - DEFAULT_CONVERSATION_TITLE
    - MAX_ATTACHMENTS / MAX_ATTACHMENT_SIZE_KB
    - HISTORY_WINDOW
    """

    REGENERATION_MAX_ATTEMPTS: int = Field(default=5, ge=1)
    RETRY_BACKOFF_BASE: float = Field(default=0.05, ge=0)
    RETRY_BACKOFF_MAX: float = Field(default=1.0, ge=0)
    DEFAULT_PAGE_SIZE: int = Field(default=20, ge=1)
    MAX_PAGE_SIZE: int = Field(default=100, ge=1)
    CONVERSATION_PAGE_SIZE: int = Field(default=15, ge=1)
    DEFAULT_CONVERSATION_TITLE: str = Field(default="New Conversation")
    MAX_ATTACHMENTS: int = Field(default=5, ge=0)
    MAX_ATTACHMENT_SIZE_KB: int = Field(default=10240, ge=1)
    HISTORY_WINDOW: int = Field(default=20, ge=1)


class Settings(BaseModel):
    APP: AppSettings = Field(default_factory=AppSettings)
    DATABASE: PgDbSettings = Field(default_factory=PgDbSettings)
    MINIO: MinIOSettings = Field(default_factory=MinIOSettings)
    OPENAI: OpenAISettings = Field(default_factory=OpenAISettings)
    CHAT: ChatSettings = Field(default_factory=ChatSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()


SETTINGS = get_settings()
