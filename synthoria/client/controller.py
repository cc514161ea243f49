"""
Conversation list and selection state for an interactive front end.

The controller owns the cached conversation list, the selected conversation
and the single in-flight prompt. Observers subscribe to receive every new
state; state objects are replaced, never mutated.
"""

from datetime import datetime
from typing import Callable, List, Optional

import httpx
import structlog

from ..core.constants import DEFAULT_MODEL
from ..models.chat import MessageRole
from ..schemas.chat import ChatSchema, MessageSchema
from ..streaming.frames import ErrorFrame
from .api import ChatApiClient, ChatApiError
from .demux import StreamDemultiplexer, StreamFold, StreamOutcome
from .notifications import LogNotifier, Notifier

logger = structlog.get_logger(__name__)

Subscriber = Callable[["ConversationController"], None]


def _by_recency(chats: List[ChatSchema]) -> List[ChatSchema]:
    return sorted(chats, key=lambda c: c.updated_at or datetime.min, reverse=True)


class ConversationController:
    """Cached conversations of the signed-in user."""

    def __init__(
        self,
        api: ChatApiClient,
        notifier: Optional[Notifier] = None,
        default_chat_name: str = "New Chat",
        demultiplexer: Optional[StreamDemultiplexer] = None,
    ):
        self.api = api
        self.notifier = notifier or LogNotifier()
        self.default_chat_name = default_chat_name
        self.demultiplexer = demultiplexer or StreamDemultiplexer()

        self.user_id: Optional[str] = None
        self.chats: List[ChatSchema] = []
        self.selected_id: Optional[str] = None
        self.streaming = False
        self._subscribers: List[Subscriber] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def selected(self) -> Optional[ChatSchema]:
        for chat in self.chats:
            if chat.id == self.selected_id:
                return chat
        return None

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register an observer; returns the function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self) -> None:
        for callback in list(self._subscribers):
            callback(self)

    def _replace_chat(self, chat: ChatSchema, publish: bool = True) -> None:
        others = [c for c in self.chats if c.id != chat.id]
        self.chats = _by_recency([chat] + others)
        if publish:
            self._publish()

    def _apply_stream_snapshot(self, snapshot: ChatSchema) -> None:
        """Take the streamed messages into the cached chat, if it is still cached."""
        current = next((c for c in self.chats if c.id == snapshot.id), None)
        if current is None:
            return
        self._replace_chat(current.model_copy(update={"messages": snapshot.messages}))

    # ------------------------------------------------------------------
    # Identity and list management
    # ------------------------------------------------------------------

    async def on_identity(self, user_id: Optional[str]) -> None:
        """
        Load the list for a newly signed-in user.

        A user without conversations gets one default conversation so there
        is always something selected.
        """
        self.user_id = user_id
        if not user_id:
            self.chats = []
            self.selected_id = None
            self._publish()
            return

        try:
            chats = await self.api.list_chats()
            if not chats:
                await self.api.create_chat(self.default_chat_name)
                chats = await self.api.list_chats()
        except (ChatApiError, httpx.HTTPError) as e:
            self._report(e)
            return

        self.chats = _by_recency(chats)
        self.selected_id = self.chats[0].id if self.chats else None
        logger.info("Conversations loaded", user_id=user_id, count=len(self.chats))
        self._publish()

    def select_chat(self, chat_id: str) -> None:
        if not any(c.id == chat_id for c in self.chats):
            logger.warning("Unknown conversation selected", chat_id=chat_id)
            return
        self.selected_id = chat_id
        self._publish()

    async def create_chat(self, name: Optional[str] = None) -> Optional[ChatSchema]:
        try:
            chat = await self.api.create_chat(name or self.default_chat_name)
        except (ChatApiError, httpx.HTTPError) as e:
            self._report(e)
            return None

        self.selected_id = chat.id
        self._replace_chat(chat)
        self.notifier.success("Chat created")
        return chat

    async def rename_chat(self, chat_id: str, name: str) -> None:
        """Rename locally, then on the server; a failure is reported, not reverted."""
        current = next((c for c in self.chats if c.id == chat_id), None)
        if current is not None:
            self._replace_chat(current.model_copy(update={"name": name, "updated_at": datetime.utcnow()}))

        try:
            await self.api.rename_chat(chat_id, name)
        except (ChatApiError, httpx.HTTPError) as e:
            self._report(e)
            return
        self.notifier.success("Chat renamed")

    async def delete_chat(self, chat_id: str) -> None:
        """Drop locally, then on the server; a failure is reported, not reverted."""
        self.chats = [c for c in self.chats if c.id != chat_id]
        if self.selected_id == chat_id:
            self.selected_id = self.chats[0].id if self.chats else None
        self._publish()

        try:
            await self.api.delete_chat(chat_id)
        except (ChatApiError, httpx.HTTPError) as e:
            self._report(e)
            return
        self.notifier.success("Chat deleted")

    # ------------------------------------------------------------------
    # Prompting
    # ------------------------------------------------------------------

    async def send_prompt(self, content: str, model: str = DEFAULT_MODEL) -> Optional[StreamOutcome]:
        """
        Send a prompt to the selected conversation and fold the reply.

        The conversation is tracked by id, so switching the selection while
        the reply streams keeps both the list and the selection consistent.
        """
        content = content.strip()
        chat = self.selected
        if not content or chat is None:
            return None
        if self.streaming:
            self.notifier.error("Wait for the current response to finish")
            return None

        now = datetime.utcnow()
        provisional = chat.model_copy(update={
            "messages": list(chat.messages) + [
                MessageSchema(role=MessageRole.USER, content=content, model=model, timestamp=now),
                MessageSchema(role=MessageRole.ASSISTANT, content="", model=model, timestamp=now),
            ],
            "updated_at": now,
        })
        fold = StreamFold(provisional, len(provisional.messages) - 1)

        self.streaming = True
        self._replace_chat(provisional)
        try:
            async with self.api.stream_prompt(chat.id, content, model) as response:
                outcome = await self.demultiplexer.consume(
                    response.aiter_text(),
                    fold,
                    on_snapshot=self._apply_stream_snapshot,
                )
        except ChatApiError as e:
            # Rejected before streaming; nothing was stored
            self._apply_stream_snapshot(chat)
            self._report(e)
            return None
        except httpx.HTTPError as e:
            logger.warning("Stream interrupted", chat_id=chat.id, error=str(e))
            self._apply_stream_snapshot(fold.apply(ErrorFrame(error="Connection lost while receiving the response")))
            self.notifier.error("Connection lost while receiving the response")
            return StreamOutcome(error=str(e))
        finally:
            self.streaming = False

        if outcome.error:
            self.notifier.error(outcome.error)
        return outcome

    def _report(self, error: Exception) -> None:
        message = error.message if isinstance(error, ChatApiError) else "Could not reach the server"
        logger.warning("Conversation request failed", error=str(error))
        self.notifier.error(message)
