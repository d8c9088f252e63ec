"""Infrastructure resources: database and MinIO.

This module is part of the infra layer and must not import from application features.
"""
from io import BytesIO
from typing import Optional
from urllib.parse import urlparse

from minio import Minio
from minio.error import S3Error
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


class DatabaseResource:
    """Database resource for dependency injection."""

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        lock_timeout: Optional[str] = None,
        statement_timeout: Optional[str] = None,
    ):
        self.database_url = database_url
        self.echo = echo
        self.lock_timeout = lock_timeout
        self.statement_timeout = statement_timeout
        self.engine = None
        self.session_factory = None

    async def init(self):
        """Initialize the engine and session factory."""
        if self.engine is not None:
            return self
        options = {"echo": self.echo, "pool_pre_ping": True}
        if self.is_sqlite:
            # Wait for the writer lock instead of failing immediately
            options["connect_args"] = {"timeout": 30}
        else:
            options["pool_recycle"] = 3600
            server_settings = {}
            if self.lock_timeout:
                server_settings["lock_timeout"] = self.lock_timeout
            if self.statement_timeout:
                server_settings["statement_timeout"] = self.statement_timeout
            if server_settings and "asyncpg" in self.database_url:
                options["connect_args"] = {"server_settings": server_settings}
        self.engine = create_async_engine(self.database_url, **options)
        if self.is_sqlite:
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def get_session(self) -> AsyncSession:
        """Get database session (synchronous accessor)."""
        if self.session_factory is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self.session_factory()

    async def shutdown(self):
        """Dispose the engine and its pool."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class MinIOResource:
    """MinIO resource for dependency injection."""

    def __init__(
        self, endpoint: str, access_key: str, secret_key: str, bucket_name: str
    ):
        self.endpoint = endpoint
        self.access_key = access_key
        self.secret_key = secret_key
        self.bucket_name = bucket_name
        self.client: Optional[Minio] = None

    async def init(self):
        """Create the client and make sure the bucket exists."""
        parsed = urlparse(
            self.endpoint if "://" in self.endpoint else f"http://{self.endpoint}"
        )
        secure = parsed.scheme == "https"
        netloc = parsed.netloc or parsed.path  # handle cases like "minio:9000"

        self.client = Minio(
            endpoint=netloc,
            access_key=self.access_key,
            secret_key=self.secret_key,
            secure=secure,
        )
        await self.ensure_bucket()
        return self

    async def ensure_bucket(self):
        assert self.client is not None, "MinIO client not initialized"
        if not self.client.bucket_exists(self.bucket_name):
            self.client.make_bucket(self.bucket_name)

    async def put_object_bytes(
        self,
        bucket_name: str,
        object_name: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Upload bytes as one object."""
        assert self.client is not None, "MinIO client not initialized"
        try:
            self.client.put_object(
                bucket_name,
                object_name,
                BytesIO(data),
                len(data),
                content_type=content_type,
            )
        except S3Error as e:
            raise RuntimeError(
                f"Failed to put object {object_name} to bucket {bucket_name}: {e}"
            ) from e

    async def shutdown(self):
        self.client = None
        return self
