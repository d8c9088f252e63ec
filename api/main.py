import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic_core import _pydantic_core
from sqlalchemy import text
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request

from api.shared.dtos import HealthCheckResponse
from api.shared.exceptions import ChatAPIException
from core.logging import configure_logging
from core.settings import SETTINGS
from di.container import ApplicationContainer as DependencyContainer

logger = logging.getLogger("chat")


class CustomFastAPI(FastAPI):
    container: DependencyContainer


@asynccontextmanager
async def lifespan(_app: CustomFastAPI):
    logger.info("Starting application initialization...")
    start_time = time.time()

    try:
        logger.info("Initializing database connection...")
        db_start = time.time()
        db_resource = _app.container.infrastructure.database()
        await db_resource.init()
        async with db_resource.engine.connect() as _conn:
            # Verify database connection
            await _conn.execute(text("SELECT 1"))
        logger.info(f"Database connection established in {time.time() - db_start:.2f}s")

        logger.info("Initializing MinIO client...")
        minio_start = time.time()
        minio_resource = _app.container.infrastructure.minio_client()
        await minio_resource.init()
        logger.info(f"MinIO client initialized in {time.time() - minio_start:.2f}s")

        logger.info(f"Application startup completed in {time.time() - start_time:.2f}s")
    except Exception as e:
        logger.exception(f"Failed to initialize application: {str(e)}")
        raise

    yield

    await _app.container.infrastructure.minio_client().shutdown()
    await _app.container.infrastructure.database().shutdown()
    logger.info("Application shutdown complete")


def error_body(error: str, detail: str, status_code: int, details=None) -> dict:
    body = {"error": error, "detail": detail, "status_code": status_code}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(_app: FastAPI) -> None:
    @_app.exception_handler(ChatAPIException)
    async def chat_exception_handler(request: Request, exc: ChatAPIException):
        headers = {}
        if getattr(exc, "retryable", False):
            headers["Retry-After"] = "1"
        if exc.status_code >= 500:
            logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.error_code, exc.message, exc.status_code, exc.details),
            headers=headers,
        )

    @_app.exception_handler(404)
    async def not_found_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=404,
            content=error_body("Not Found", f"{exc.detail} : {request.url}", 404),
        )

    @_app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_body("Validation Error", str(exc), 422),
        )

    @_app.exception_handler(_pydantic_core.ValidationError)
    async def pydantic_validation_handler(
        request: Request, exc: _pydantic_core.ValidationError
    ):
        return JSONResponse(
            status_code=422,
            content=error_body("Validation Error", str(exc), 422),
        )

    @_app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content=error_body("Internal Server Error", "An unexpected error occurred", 500),
        )


def create_fastapi_app() -> CustomFastAPI:
    configure_logging(SETTINGS.APP)

    origins = {
        "*",
        "http://localhost",
        "http://localhost:*",
        "http://localhost:3000",
        "http://localhost:8000",
    }

    _app = CustomFastAPI(
        title="Chat API",
        description="Multi-turn conversations with versioned bot replies",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Initialize dependency container
    _app.container = DependencyContainer()
    _app.container.infrastructure.config.from_dict(SETTINGS.model_dump())
    _app.container.wire(modules=[sys.modules[__name__]])

    _app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(_app)

    @_app.get("/health", response_model=HealthCheckResponse)
    async def health():
        return HealthCheckResponse(status="ok", version=_app.version)

    @_app.get("/ready")
    async def ready():
        db_resource = _app.container.infrastructure.database()
        if db_resource.engine is None:
            return JSONResponse(status_code=503, content={"status": "starting"})
        async with db_resource.engine.connect() as _conn:
            await _conn.execute(text("SELECT 1"))
        return {"status": "ok"}

    # Include feature routers
    from api.features.ai_models.router import router as ai_models_router
    from api.features.conversations.router import router as conversations_router
    from api.features.messages.router import router as messages_router

    _app.include_router(ai_models_router, prefix="/api/v1/ai-models", tags=["AI Models"])
    _app.include_router(messages_router, prefix="/api/v1", tags=["Messages"])
    _app.include_router(
        conversations_router, prefix="/api/v1/conversations", tags=["Conversations"]
    )

    return _app


app = create_fastapi_app()
