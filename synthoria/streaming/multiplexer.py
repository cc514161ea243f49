"""
Stream multiplexer - relays one upstream completion onto the outbound event stream.

Responsibilities:
    - Validate the model key and conversation ownership before streaming
    - Persist the user message before the response starts
    - Classify provider chunks and emit reasoning / answer / duration / error frames
    - Persist the assistant message exactly once, then emit the terminal frame
    - Close the outbound stream exactly once on every exit path
"""

import time
from datetime import datetime
from typing import AsyncGenerator, Callable, Optional

import httpx
import structlog

from ..core.constants import SYSTEM_PROMPT, resolve_model
from ..core.exceptions import InvalidModelError
from ..models.chat import Conversation, Message, MessageRole
from ..services.completion_client import CompletionClient, build_messages
from ..services.conversation_store import ConversationStore
from .chunks import AnswerDelta, FinishSignal, ProviderError, ReasoningDelta, classify_chunk
from .frames import (
    DONE,
    AnswerFrame,
    ErrorFrame,
    Frame,
    ReasoningDurationFrame,
    ReasoningFrame,
)

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]


class ReasoningTimer:
    """
    Measures how long the model has been reasoning.

    Starts lazily on the first reasoning growth and is re-marked on every
    growth, so reported durations never decrease.
    """

    def __init__(self, clock: Clock = time.monotonic):
        self._clock = clock
        self._started: Optional[float] = None
        self._last: Optional[float] = None

    @property
    def started(self) -> bool:
        return self._started is not None

    def mark(self) -> int:
        """Record a reasoning growth and return the running duration in ms."""
        now = self._clock()
        if self._started is None:
            self._started = now
        self._last = max(now, self._last or now)
        return int((self._last - self._started) * 1000)

    def final_ms(self) -> Optional[int]:
        """Final duration, at least 1 ms once reasoning happened, else None."""
        if self._started is None:
            return None
        return max(1, int(round((self._last - self._started) * 1000)))


def describe_failure(exc: BaseException) -> str:
    """User-facing text for a failure raised while streaming."""
    if isinstance(exc, httpx.HTTPStatusError):
        return f"The model provider rejected the request (HTTP {exc.response.status_code})"
    if isinstance(exc, httpx.TimeoutException):
        return "The model provider timed out"
    if isinstance(exc, httpx.HTTPError):
        return "Could not reach the model provider"
    return "Failed to generate a response"


class ChatStream:
    """
    Outbound stream of one chat request.

    Owns the answer and reasoning accumulators for the lifetime of the request
    and hands them to the store once, when the upstream sequence ends.
    """

    def __init__(
        self,
        store: ConversationStore,
        client: CompletionClient,
        conversation: Conversation,
        content: str,
        model_key: str,
        system_prompt: str = SYSTEM_PROMPT,
        clock: Clock = time.monotonic,
    ):
        self.store = store
        self.client = client
        self.conversation = conversation
        self.content = content
        self.model_key = model_key
        self.system_prompt = system_prompt

        self.answer = ""
        self.reasoning = ""
        self.timer = ReasoningTimer(clock)
        self.assistant_message: Optional[Message] = None
        self.closed = False

    def _build_assistant_message(self, upstream_error: Optional[str]) -> Message:
        if upstream_error is not None:
            # Partial output is not kept; the stored reply mirrors what the client shows
            return Message(
                role=MessageRole.ASSISTANT,
                content=upstream_error,
                model=self.model_key,
                timestamp=datetime.utcnow(),
                is_error=True,
            )

        return Message(
            role=MessageRole.ASSISTANT,
            content=self.answer,
            model=self.model_key,
            timestamp=datetime.utcnow(),
            reasoning=self.reasoning or None,
            reasoning_duration_ms=self.timer.final_ms() if self.reasoning else None,
        )

    async def _finalize(self, upstream_error: Optional[str]) -> None:
        message = self._build_assistant_message(upstream_error)
        await self.store.append_message(self.conversation, message)
        self.assistant_message = message

        logger.info(
            "Assistant message persisted",
            chat_id=self.conversation.id,
            answer_length=len(self.answer),
            reasoning_length=len(self.reasoning),
            reasoning_duration_ms=message.reasoning_duration_ms,
            is_error=bool(message.is_error)
        )

    def _close(self) -> None:
        if self.closed:
            return
        self.closed = True
        logger.info(
            "Chat stream closed",
            chat_id=self.conversation.id,
            persisted=self.assistant_message is not None
        )

    async def frames(self) -> AsyncGenerator[Frame, None]:
        """
        Yield classified frames in upstream order, ending with the terminal frame.

        Transport and persistence failures become one best-effort error frame.
        """
        error_sent = False
        try:
            try:
                upstream_error: Optional[str] = None
                messages = build_messages(self.content, self.system_prompt)
                upstream = self.client.chat_completion_stream(messages, model=self.model_key)
                try:
                    async for chunk in upstream:
                        for event in classify_chunk(chunk):
                            if isinstance(event, ReasoningDelta):
                                self.reasoning += event.text
                                yield ReasoningFrame(delta=event.text)
                                yield ReasoningDurationFrame(duration_ms=self.timer.mark())
                            elif isinstance(event, AnswerDelta):
                                self.answer += event.text
                                yield AnswerFrame(delta=event.text)
                            elif isinstance(event, ProviderError):
                                upstream_error = event.message
                                break
                            elif isinstance(event, FinishSignal):
                                logger.debug(
                                    "Upstream finished",
                                    chat_id=self.conversation.id,
                                    finish_reason=event.reason
                                )
                            else:
                                raise TypeError(f"Unhandled chunk event: {event!r}")

                        if upstream_error is not None:
                            break
                finally:
                    await upstream.aclose()

                if upstream_error is not None:
                    logger.warning(
                        "Upstream reported an error mid-stream",
                        chat_id=self.conversation.id,
                        error=upstream_error
                    )
                    error_sent = True
                    yield ErrorFrame(error=upstream_error)

                await self._finalize(upstream_error)
                yield DONE

            except Exception as e:
                logger.error(
                    "Chat stream failed",
                    chat_id=self.conversation.id,
                    error=str(e),
                    error_type=type(e).__name__
                )
                if not error_sent:
                    yield ErrorFrame(error=describe_failure(e))
        finally:
            self._close()


class ChatStreamMultiplexer:
    """Entry point used by the chat endpoint."""

    def __init__(
        self,
        store: ConversationStore,
        client: CompletionClient,
        system_prompt: str = SYSTEM_PROMPT,
        clock: Clock = time.monotonic,
    ):
        self.store = store
        self.client = client
        self.system_prompt = system_prompt
        self.clock = clock

    async def open(self, user_id: str, chat_id: str, content: str, model_key: str) -> ChatStream:
        """
        Validate the request and persist the user message.

        Raises:
            InvalidModelError: model key not in the allow-list (nothing written)
            ConversationNotFoundError: conversation absent or not owned by ``user_id``
        """
        if resolve_model(model_key) is None:
            logger.warning("Rejected unknown model", model=model_key, user_id=user_id)
            raise InvalidModelError(model_key)

        conversation = await self.store.load(user_id, chat_id)

        user_message = Message(
            role=MessageRole.USER,
            content=content,
            model=model_key,
            timestamp=datetime.utcnow(),
        )
        await self.store.append_message(conversation, user_message)

        logger.info(
            "Chat stream opened",
            chat_id=chat_id,
            user_id=user_id,
            model=model_key,
            content_length=len(content)
        )

        return ChatStream(
            store=self.store,
            client=self.client,
            conversation=conversation,
            content=content,
            model_key=model_key,
            system_prompt=self.system_prompt,
            clock=self.clock,
        )
