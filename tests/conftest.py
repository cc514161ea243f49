"""
Pytest configuration and shared fixtures.

Nothing here talks to MongoDB or OpenRouter: stores are replaced by an
in-memory fake and the completion client by scripted chunk sequences.
"""

import os
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest

os.environ.setdefault("OPENROUTER_API_KEY", "sk-test-key-123456")
os.environ.setdefault("AUTH_JWT_KEY", "test-signing-secret")
os.environ.setdefault("AUTH_JWT_ALGORITHM", "HS256")
os.environ.setdefault("CLERK_WEBHOOK_SECRET", "whsec_dGVzdC13ZWJob29rLXNlY3JldA==")

from synthoria.core.config import get_settings  # noqa: E402
from synthoria.core.exceptions import ConversationNotFoundError  # noqa: E402
from synthoria.models.chat import Message  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without external services")
    config.addinivalue_line("markers", "integration: tests that exercise several layers together")


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Settings are cached per process; tests that patch the env need a fresh copy."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """sse-starlette keeps a process-wide exit event bound to the first event loop."""
    from sse_starlette.sse import AppStatus

    if hasattr(AppStatus, "should_exit_event"):
        AppStatus.should_exit_event = None
    yield
    if hasattr(AppStatus, "should_exit_event"):
        AppStatus.should_exit_event = None


def make_conversation(
    chat_id: str = "chat-1",
    user_id: str = "user_1",
    name: str = "New Chat",
    messages: Optional[List[Message]] = None,
    updated_at: Optional[datetime] = None,
) -> Mock:
    """Stand-in for a ``Conversation`` document (Beanie documents need a live database)."""
    now = updated_at or datetime(2025, 1, 1, 12, 0, 0)
    conversation = Mock()
    conversation.id = chat_id
    conversation.user_id = user_id
    conversation.name = name
    conversation.messages = list(messages or [])
    conversation.created_at = now - timedelta(hours=1)
    conversation.updated_at = now
    return conversation


class FakeConversationStore:
    """In-memory ``ConversationStore`` recording every write."""

    def __init__(self):
        self.conversations: Dict[str, Mock] = {}
        self.appended: List[Message] = []
        self.fail_on_append: Optional[int] = None

    def add(self, conversation: Mock) -> Mock:
        self.conversations[conversation.id] = conversation
        return conversation

    async def create(self, user_id: str, name: str) -> Mock:
        conversation = make_conversation(
            chat_id=f"chat-{len(self.conversations) + 1}",
            user_id=user_id,
            name=name,
            updated_at=datetime.utcnow(),
        )
        return self.add(conversation)

    async def list(self, user_id: str) -> List[Mock]:
        owned = [c for c in self.conversations.values() if c.user_id == user_id]
        return sorted(owned, key=lambda c: c.updated_at, reverse=True)

    async def load(self, user_id: str, chat_id: str) -> Mock:
        conversation = self.conversations.get(chat_id)
        if conversation is None or conversation.user_id != user_id:
            raise ConversationNotFoundError(chat_id)
        return conversation

    async def rename(self, user_id: str, chat_id: str, name: str) -> Mock:
        conversation = await self.load(user_id, chat_id)
        conversation.name = name
        conversation.updated_at = datetime.utcnow()
        return conversation

    async def delete(self, user_id: str, chat_id: str) -> bool:
        conversation = self.conversations.get(chat_id)
        if conversation is None or conversation.user_id != user_id:
            return False
        del self.conversations[chat_id]
        return True

    async def append_message(self, conversation: Mock, message: Message) -> None:
        if self.fail_on_append is not None and len(self.appended) == self.fail_on_append:
            raise RuntimeError("write failed")
        self.appended.append(message)
        conversation.messages.append(message)
        conversation.updated_at = datetime.utcnow()


def scripted_client(chunks: List[Any], error: Optional[Exception] = None) -> Mock:
    """
    Completion client whose stream yields ``chunks`` then optionally raises.

    The returned mock records the ``messages`` and ``model`` of every call.
    """
    client = Mock()
    client.calls = []
    client.closed_streams = 0

    def chat_completion_stream(messages, model, **kwargs):
        client.calls.append({"messages": messages, "model": model})

        async def generator():
            try:
                for chunk in chunks:
                    yield chunk
                if error is not None:
                    raise error
            finally:
                client.closed_streams += 1

        return generator()

    client.chat_completion_stream = chat_completion_stream
    client.health_check = AsyncMock(return_value=True)
    return client


def answer_chunk(text: str, finish_reason: Optional[str] = None) -> Dict[str, Any]:
    return {"choices": [{"delta": {"content": text}, "finish_reason": finish_reason}]}


def reasoning_chunk(text: str) -> Dict[str, Any]:
    return {
        "choices": [{
            "delta": {"reasoning_details": [{"type": "reasoning.text", "text": text}]},
            "finish_reason": None,
        }]
    }


@pytest.fixture
def store() -> FakeConversationStore:
    return FakeConversationStore()


@pytest.fixture
def conversation(store) -> Mock:
    return store.add(make_conversation())
