"""
Router test fixtures: a bare application with the production routers and
exception handlers, and every external dependency overridden.
"""

from typing import Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from synthoria.core.auth import get_current_user_id
from synthoria.core.dependencies import get_conversation_store, get_database, get_user_service
from synthoria.core.exceptions import register_exception_handlers
from synthoria.routers import chat, conversations, health, webhooks
from synthoria.services.completion_client import get_completion_client


def build_app(store=None, completion_client=None, user_service=None, database=None, user_id: Optional[str] = "user_1") -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    for module in (chat, conversations, health, webhooks):
        app.include_router(module.router, prefix="/api")

    app.dependency_overrides[get_conversation_store] = lambda: store
    app.dependency_overrides[get_completion_client] = lambda: completion_client
    app.dependency_overrides[get_user_service] = lambda: user_service
    app.dependency_overrides[get_database] = lambda: database
    if user_id is not None:
        app.dependency_overrides[get_current_user_id] = lambda: user_id
    return app


@pytest.fixture
def make_client():
    def factory(raise_server_exceptions: bool = True, **kwargs) -> TestClient:
        return TestClient(build_app(**kwargs), raise_server_exceptions=raise_server_exceptions)
    return factory
