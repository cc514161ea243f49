"""
Stream demultiplexer - folds the chat event stream into conversation snapshots.

Text arrives in arbitrary pieces; ``FrameDecoder`` reassembles records and
``StreamFold`` applies each decoded frame to the in-flight assistant message.
Every applied frame produces a new conversation snapshot; earlier snapshots
are never mutated.
"""

from dataclasses import dataclass
from typing import AsyncIterable, Callable, List, Optional

import structlog

from ..core.constants import SSE_COMMENT_PREFIX, SSE_DATA_PREFIX
from ..schemas.chat import ChatSchema, MessageSchema
from ..streaming.frames import (
    AnswerFrame,
    DoneFrame,
    ErrorFrame,
    Frame,
    ReasoningDurationFrame,
    ReasoningFrame,
    decode_payload,
)

logger = structlog.get_logger(__name__)

SnapshotCallback = Callable[[ChatSchema], None]


class FrameDecoder:
    """
    Incremental event-stream record decoder.

    Example:
        >>> decoder = FrameDecoder()
        >>> decoder.feed('data: {"type":"answer","del')
        []
        >>> decoder.feed('ta":"Hi"}\\n\\n')
        ['{"type":"answer","delta":"Hi"}']
    """

    def __init__(self):
        self._buffer = ""
        self._pending_cr = False

    def _normalize(self, text: str) -> str:
        if self._pending_cr:
            text = "\r" + text
            self._pending_cr = False
        # A trailing CR may be the first half of a CRLF split across pieces
        if text.endswith("\r"):
            text = text[:-1]
            self._pending_cr = True
        return text.replace("\r\n", "\n").replace("\r", "\n")

    @staticmethod
    def _payload(record: str) -> Optional[str]:
        data_lines = []
        for line in record.split("\n"):
            if not line or line.startswith(SSE_COMMENT_PREFIX):
                continue
            if line.startswith(SSE_DATA_PREFIX):
                value = line[len(SSE_DATA_PREFIX):]
                if value.startswith(" "):
                    value = value[1:]
                data_lines.append(value)
        if not data_lines:
            return None
        return "\n".join(data_lines)

    def feed(self, text: str) -> List[str]:
        """Add text and return the payloads of every record it completes."""
        self._buffer += self._normalize(text)

        payloads = []
        while "\n\n" in self._buffer:
            record, self._buffer = self._buffer.split("\n\n", 1)
            payload = self._payload(record)
            if payload is not None:
                payloads.append(payload)
        return payloads

    def flush(self) -> List[str]:
        """Payload of a final record the stream ended without terminating."""
        if self._pending_cr:
            self._pending_cr = False
        record, self._buffer = self._buffer, ""
        payload = self._payload(record)
        return [payload] if payload is not None else []


def fold_frame(conversation: ChatSchema, index: int, frame: Frame) -> ChatSchema:
    """Return a new snapshot with ``frame`` applied to message ``index``."""
    message = conversation.messages[index]

    if isinstance(frame, ErrorFrame):
        updated = message.model_copy(update={"content": frame.error, "is_error": True})
    elif isinstance(frame, ReasoningDurationFrame):
        updated = message.model_copy(update={"reasoning_duration_ms": frame.duration_ms})
    elif isinstance(frame, ReasoningFrame):
        updated = message.model_copy(update={"reasoning": (message.reasoning or "") + frame.delta})
    elif isinstance(frame, AnswerFrame):
        updated = message.model_copy(update={"content": message.content + frame.delta})
    else:
        raise TypeError(f"Frame cannot be folded: {frame!r}")

    messages: List[MessageSchema] = list(conversation.messages)
    messages[index] = updated
    return conversation.model_copy(update={"messages": messages})


class StreamFold:
    """Current projection of one conversation while its reply streams in."""

    def __init__(self, conversation: ChatSchema, assistant_index: int):
        if not 0 <= assistant_index < len(conversation.messages):
            raise IndexError("assistant_index is outside the conversation")
        self.snapshot = conversation
        self.assistant_index = assistant_index

    @property
    def assistant_message(self) -> MessageSchema:
        return self.snapshot.messages[self.assistant_index]

    def apply(self, frame: Frame) -> ChatSchema:
        self.snapshot = fold_frame(self.snapshot, self.assistant_index, frame)
        return self.snapshot


@dataclass
class StreamOutcome:
    """How a consumed stream ended"""
    done: bool = False
    error: Optional[str] = None
    frames: int = 0
    dropped: int = 0


class StreamDemultiplexer:
    """Drives a ``StreamFold`` from raw response text."""

    async def consume(
        self,
        chunks: AsyncIterable[str],
        fold: StreamFold,
        on_snapshot: Optional[SnapshotCallback] = None,
    ) -> StreamOutcome:
        """
        Fold every frame of the stream, in arrival order.

        Stops at the terminal frame or after an error frame. Malformed
        payloads are dropped. A body that ends without either is reported
        with ``done=False`` and no error.
        """
        decoder = FrameDecoder()
        outcome = StreamOutcome()

        async for text in chunks:
            for payload in decoder.feed(text):
                if self._handle(payload, fold, on_snapshot, outcome):
                    return outcome

        for payload in decoder.flush():
            if self._handle(payload, fold, on_snapshot, outcome):
                return outcome

        logger.info("Stream ended without terminal frame", frames=outcome.frames)
        return outcome

    @staticmethod
    def _handle(
        payload: str,
        fold: StreamFold,
        on_snapshot: Optional[SnapshotCallback],
        outcome: StreamOutcome,
    ) -> bool:
        """Apply one payload; True when the stream is finished."""
        frame = decode_payload(payload)
        if frame is None:
            outcome.dropped += 1
            logger.debug("Dropped malformed frame", payload=payload[:200])
            return False

        if isinstance(frame, DoneFrame):
            outcome.done = True
            return True

        snapshot = fold.apply(frame)
        outcome.frames += 1
        if on_snapshot is not None:
            on_snapshot(snapshot)

        if isinstance(frame, ErrorFrame):
            outcome.error = frame.error
            return True
        return False
