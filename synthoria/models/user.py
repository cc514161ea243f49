"""
User document model, mirrored from the external identity provider
"""

from datetime import datetime
from typing import Optional

from beanie import Document
from pydantic import Field


class User(Document):
    """User document model keyed by the external identity id"""
    id: str = Field(..., alias="_id")
    email: Optional[str] = Field(None, description="Primary email address")
    name: Optional[str] = Field(None, description="Display name")
    image: Optional[str] = Field(None, description="Avatar URL")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=datetime.utcnow, description="Last update timestamp")

    class Settings:
        name = "users"
        indexes = [
            "email",
        ]

    def __str__(self) -> str:
        return f"User(id={self.id}, email={self.email})"
