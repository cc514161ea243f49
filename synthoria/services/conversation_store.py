"""
Conversation store adapter.

Thin layer over the Beanie ``Conversation`` document. Every operation first
makes sure the shared database handle is connected.
"""

from datetime import datetime
from typing import List

import structlog

from ..core.database import Database
from ..core.exceptions import ConversationNotFoundError
from ..models.chat import Conversation, Message

logger = structlog.get_logger(__name__)


class ConversationStore:
    """Load, list and mutate conversations scoped to their owner."""

    def __init__(self, database: Database):
        self._database = database

    async def create(self, user_id: str, name: str) -> Conversation:
        """Create an empty conversation."""
        await self._database.ensure_connected()

        conversation = Conversation(name=name, user_id=user_id, messages=[])
        await conversation.insert()

        logger.info("Conversation created", chat_id=conversation.id, user_id=user_id)
        return conversation

    async def list(self, user_id: str) -> List[Conversation]:
        """All conversations of ``user_id``, most recently updated first."""
        await self._database.ensure_connected()

        return await Conversation.find(
            Conversation.user_id == user_id
        ).sort(-Conversation.updated_at).to_list()

    async def load(self, user_id: str, chat_id: str) -> Conversation:
        """
        Load a conversation owned by ``user_id``.

        Raises:
            ConversationNotFoundError: absent, or owned by someone else
        """
        await self._database.ensure_connected()

        conversation = await Conversation.find_one(
            Conversation.id == chat_id,
            Conversation.user_id == user_id,
        )
        if conversation is None:
            logger.info("Conversation not found", chat_id=chat_id, user_id=user_id)
            raise ConversationNotFoundError(chat_id)
        return conversation

    async def rename(self, user_id: str, chat_id: str, name: str) -> Conversation:
        """Change the display name of a conversation."""
        conversation = await self.load(user_id, chat_id)

        conversation.name = name
        conversation.updated_at = datetime.utcnow()
        await conversation.save()

        logger.info("Conversation renamed", chat_id=chat_id, user_id=user_id)
        return conversation

    async def delete(self, user_id: str, chat_id: str) -> bool:
        """Delete a conversation; deleting an absent one is a no-op."""
        await self._database.ensure_connected()

        result = await Conversation.find_one(
            Conversation.id == chat_id,
            Conversation.user_id == user_id,
        ).delete()

        deleted = bool(result and result.deleted_count)
        logger.info("Conversation delete", chat_id=chat_id, user_id=user_id, deleted=deleted)
        return deleted

    async def append_message(self, conversation: Conversation, message: Message) -> None:
        """
        Append one message with a single atomic write.

        ``$push`` merges with concurrent appends to the same document instead of
        overwriting the whole messages array.
        """
        await self._database.ensure_connected()

        now = datetime.utcnow()
        await Conversation.find_one(Conversation.id == conversation.id).update(
            {
                "$push": {"messages": message.model_dump(exclude_none=True)},
                "$set": {"updated_at": now},
            }
        )

        conversation.messages.append(message)
        conversation.updated_at = now

        logger.debug(
            "Message appended",
            chat_id=conversation.id,
            role=message.role.value,
            message_count=len(conversation.messages)
        )
