"""
Request-scoped accessors for the handles created at startup.
"""

from fastapi import Request

from .database import Database
from ..services.conversation_store import ConversationStore
from ..services.user_service import UserService


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_conversation_store(request: Request) -> ConversationStore:
    return request.app.state.conversation_store


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service
