"""
MongoDB document models using Beanie ODM
"""

from typing import List, Type

from beanie import Document as BeanieDocument

from .chat import Conversation, Message, MessageRole
from .user import User


def get_document_models() -> List[Type[BeanieDocument]]:
    """Get all document models for Beanie initialization"""
    return [
        User,
        Conversation,
    ]


__all__ = [
    "Conversation",
    "Message",
    "MessageRole",
    "User",
    "get_document_models",
]
