"""
Chat API schemas

Wire payloads use camelCase keys (``chatId``, ``reasoningDurationMs``,
``updatedAt``) and ``_id`` for the conversation id.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models.chat import Conversation, Message, MessageRole


class CamelModel(BaseModel):
    """Base schema serialized with camelCase aliases"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageSchema(CamelModel):
    """Chat message schema"""

    role: MessageRole = Field(..., description="Message role")
    content: str = Field(..., description="Message content")
    model: Optional[str] = Field(None, description="Model key")
    timestamp: Optional[datetime] = Field(None, description="Creation timestamp")
    reasoning: Optional[str] = Field(None, description="Reasoning trace")
    reasoning_duration_ms: Optional[int] = Field(None, ge=0, description="Reasoning duration in ms")
    is_error: Optional[bool] = Field(None, description="Whether the reply is an error notice")

    @classmethod
    def from_model(cls, message: Message) -> "MessageSchema":
        return cls.model_validate(message.model_dump())


class ChatSchema(CamelModel):
    """Conversation schema"""

    id: str = Field(..., alias="_id", description="Conversation ID")
    user_id: str = Field(..., description="Owner identity id")
    name: str = Field(..., description="Display name")
    messages: List[MessageSchema] = Field(default_factory=list, description="Ordered messages")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    @classmethod
    def from_document(cls, conversation: Conversation) -> "ChatSchema":
        return cls(
            id=conversation.id,
            user_id=conversation.user_id,
            name=conversation.name,
            messages=[MessageSchema.from_model(m) for m in conversation.messages],
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class ChatStreamRequest(CamelModel):
    """Body of POST /chat/ai"""
    chat_id: Optional[str] = Field(None, description="Conversation ID")
    content: Optional[str] = Field(None, description="User prompt")
    model: Optional[str] = Field(None, description="Model key from the allow-list")


class CreateChatRequest(CamelModel):
    """Body of POST /chat/create"""
    name: Optional[str] = Field(None, description="Display name")


class RenameChatRequest(CamelModel):
    """Body of PUT /chat/rename"""
    chat_id: Optional[str] = Field(None, description="Conversation ID")
    name: Optional[str] = Field(None, description="New display name")


class DeleteChatRequest(CamelModel):
    """Body of DELETE /chat/delete"""
    chat_id: Optional[str] = Field(None, description="Conversation ID")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class ApiResponse(CamelModel):
    """Envelope shared by every JSON endpoint"""
    success: bool = Field(..., description="Whether the request was successful")
    message: Optional[str] = Field(None, description="Response message")
    error: Optional[str] = Field(None, description="Error description")


class ChatResponse(ApiResponse):
    chat: ChatSchema


class ChatListResponse(ApiResponse):
    chats: List[ChatSchema] = Field(default_factory=list)
