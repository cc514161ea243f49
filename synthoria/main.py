"""
FastAPI application for the Synthoria API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from .core.config import get_settings
from .core.database import Database
from .core.exceptions import register_exception_handlers
from .core.logging import setup_logging
from .middleware.auth import AuthMiddleware
from .routers import chat, conversations, health, webhooks
from .services.completion_client import close_completion_client, get_completion_client
from .services.conversation_store import ConversationStore
from .services.user_service import UserService


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    app_settings = get_settings()
    setup_logging(app_settings.log_level, app_settings.log_format)
    logger = structlog.get_logger()

    database = Database(app_settings)
    app.state.database = database
    app.state.conversation_store = ConversationStore(database)
    app.state.user_service = UserService(database)

    # A failed attempt here is retried by the first request that needs the database
    try:
        await database.ensure_connected()
    except Exception as e:
        logger.error("Database unavailable at startup", error=str(e))

    await get_completion_client()

    logger.info("Starting Synthoria API", version=app.version)

    yield

    await close_completion_client()
    await database.close_mongo_connection()
    logger.info("Shutting down Synthoria API")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Streaming multi-model chat with persisted conversations",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # Security middleware
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.allowed_hosts,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    app.add_middleware(AuthMiddleware)

    register_exception_handlers(app)

    # Include routers
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(chat.router, prefix="/api", tags=["chat"])
    app.include_router(conversations.router, prefix="/api", tags=["conversations"])
    app.include_router(webhooks.router, prefix="/api", tags=["webhooks"])

    return app


app = create_app()


if __name__ == "__main__":
    app_settings = get_settings()
    uvicorn.run(
        "synthoria.main:app",
        host=app_settings.host,
        port=app_settings.port,
        reload=app_settings.debug,
        log_level=app_settings.log_level.lower(),
    )
