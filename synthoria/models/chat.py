"""
Chat document models
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from beanie import Document, Indexed
from pydantic import BaseModel, Field, model_validator


class MessageRole(str, Enum):
    """Message role enumeration"""
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """Chat message subdocument, append-only within its conversation"""

    role: MessageRole = Field(..., description="Message role")
    content: str = Field(..., description="Message content")
    model: str = Field(..., description="Model key the message was sent with")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    reasoning: Optional[str] = Field(None, description="Provider reasoning trace (assistant only)")
    reasoning_duration_ms: Optional[int] = Field(None, ge=0, description="Time spent reasoning (assistant only)")
    is_error: Optional[bool] = Field(None, description="Set when the reply is an error notice")

    @model_validator(mode="after")
    def _reasoning_only_on_assistant(self) -> "Message":
        if self.role != MessageRole.ASSISTANT and (
            self.reasoning is not None or self.reasoning_duration_ms is not None
        ):
            raise ValueError("reasoning fields are only allowed on assistant messages")
        return self


class Conversation(Document):
    """Conversation document model"""

    id: str = Field(default_factory=lambda: str(uuid4()), alias="_id")
    name: str = Field(..., max_length=200, description="Display name")
    user_id: Indexed(str) = Field(..., description="Owner identity id")
    messages: List[Message] = Field(default_factory=list, description="Ordered messages")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=datetime.utcnow, description="Last update timestamp")

    class Settings:
        name = "chats"
        indexes = [
            "user_id",
            [("user_id", 1), ("updated_at", -1)],  # Owner's recent chats
        ]

    def __str__(self) -> str:
        return f"Conversation(id={self.id}, name={self.name}, user_id={self.user_id})"
