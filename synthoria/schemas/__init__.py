"""
Pydantic schemas for API requests and responses
"""

from .chat import (
    ApiResponse,
    ChatListResponse,
    ChatResponse,
    ChatSchema,
    ChatStreamRequest,
    CreateChatRequest,
    DeleteChatRequest,
    MessageSchema,
    RenameChatRequest,
)

__all__ = [
    "ApiResponse",
    "ChatListResponse",
    "ChatResponse",
    "ChatSchema",
    "ChatStreamRequest",
    "CreateChatRequest",
    "DeleteChatRequest",
    "MessageSchema",
    "RenameChatRequest",
]
