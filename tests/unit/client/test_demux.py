"""
Tests for client/demux.py

Coverage:
- Record reassembly across arbitrary text splits and line endings
- Comment lines and malformed payloads
- Folding each frame type into a fresh snapshot
- Termination on [DONE] and on error frames
- Deterministic replay
"""

from datetime import datetime
from typing import List

import pytest

from synthoria.client.demux import FrameDecoder, StreamDemultiplexer, StreamFold, fold_frame
from synthoria.models.chat import MessageRole
from synthoria.schemas.chat import ChatSchema, MessageSchema
from synthoria.streaming.frames import (
    DONE,
    AnswerFrame,
    ErrorFrame,
    ReasoningDurationFrame,
    ReasoningFrame,
    format_record,
)


def in_flight_chat() -> ChatSchema:
    now = datetime(2025, 1, 1, 12, 0, 0)
    return ChatSchema(
        id="chat-1",
        user_id="user_1",
        name="New Chat",
        messages=[
            MessageSchema(role=MessageRole.USER, content="Hi", model="gpt-5", timestamp=now),
            MessageSchema(role=MessageRole.ASSISTANT, content="", model="gpt-5", timestamp=now),
        ],
        created_at=now,
        updated_at=now,
    )


async def pieces(*texts: str):
    for text in texts:
        yield text


def split_every(text: str, size: int) -> List[str]:
    return [text[i:i + size] for i in range(0, len(text), size)]


@pytest.mark.unit
class TestFrameDecoder:

    def test_record_split_across_pieces(self):
        decoder = FrameDecoder()

        assert decoder.feed('data: {"type":"answer",') == []
        assert decoder.feed('"delta":"Hi"}\n') == []
        assert decoder.feed("\n") == ['{"type":"answer","delta":"Hi"}']

    def test_crlf_line_endings(self):
        decoder = FrameDecoder()
        assert decoder.feed('data: [DONE]\r\n\r\n') == ["[DONE]"]

    def test_crlf_split_between_pieces(self):
        decoder = FrameDecoder()

        assert decoder.feed("data: a\r") == []
        assert decoder.feed("\n\r") == []
        assert decoder.feed("\n") == ["a"]

    def test_comment_lines_ignored(self):
        decoder = FrameDecoder()
        assert decoder.feed(": ping - 2025-01-01\n\ndata: x\n\n") == ["x"]

    def test_multiline_data_joined(self):
        decoder = FrameDecoder()
        assert decoder.feed("data: one\ndata: two\n\n") == ["one\ntwo"]

    def test_flush_returns_unterminated_record(self):
        decoder = FrameDecoder()
        decoder.feed("data: [DONE]")
        assert decoder.flush() == ["[DONE]"]
        assert decoder.flush() == []


@pytest.mark.unit
class TestFoldFrame:

    def test_each_frame_type(self):
        chat = in_flight_chat()

        chat = fold_frame(chat, 1, ReasoningFrame(delta="think"))
        chat = fold_frame(chat, 1, ReasoningFrame(delta="ing"))
        chat = fold_frame(chat, 1, ReasoningDurationFrame(duration_ms=40))
        chat = fold_frame(chat, 1, ReasoningDurationFrame(duration_ms=90))
        chat = fold_frame(chat, 1, AnswerFrame(delta="Hel"))
        chat = fold_frame(chat, 1, AnswerFrame(delta="lo"))

        message = chat.messages[1]
        assert message.reasoning == "thinking"
        assert message.reasoning_duration_ms == 90
        assert message.content == "Hello"
        assert message.is_error is None

    def test_error_replaces_content(self):
        chat = fold_frame(in_flight_chat(), 1, AnswerFrame(delta="partial"))

        chat = fold_frame(chat, 1, ErrorFrame(error="Rate limit exceeded"))

        assert chat.messages[1].content == "Rate limit exceeded"
        assert chat.messages[1].is_error is True

    def test_snapshots_are_not_mutated(self):
        before = in_flight_chat()

        after = fold_frame(before, 1, AnswerFrame(delta="Hi"))

        assert before.messages[1].content == ""
        assert after is not before
        assert after.messages is not before.messages
        assert after.messages[0] is before.messages[0]

    def test_done_cannot_be_folded(self):
        with pytest.raises(TypeError):
            fold_frame(in_flight_chat(), 1, DONE)

    def test_fold_rejects_bad_index(self):
        with pytest.raises(IndexError):
            StreamFold(in_flight_chat(), 5)


@pytest.mark.unit
class TestStreamDemultiplexer:

    STREAM = "".join([
        format_record(ReasoningFrame(delta="thinking...")),
        format_record(ReasoningDurationFrame(duration_ms=12)),
        "data: {not json}\n\n",
        'data: {"type":"telemetry"}\n\n',
        format_record(AnswerFrame(delta="Hel")),
        format_record(AnswerFrame(delta="lo")),
        format_record(DONE),
        format_record(AnswerFrame(delta=" ignored")),
    ])

    @pytest.mark.asyncio
    async def test_folds_until_done(self):
        fold = StreamFold(in_flight_chat(), 1)
        snapshots = []

        outcome = await StreamDemultiplexer().consume(pieces(self.STREAM), fold, snapshots.append)

        assert outcome.done is True
        assert outcome.error is None
        assert outcome.frames == 4
        assert outcome.dropped == 2
        assert len(snapshots) == 4
        assert fold.assistant_message.content == "Hello"
        assert fold.assistant_message.reasoning == "thinking..."
        assert fold.assistant_message.reasoning_duration_ms == 12

    @pytest.mark.asyncio
    async def test_same_result_for_any_split(self):
        results = set()
        for size in (1, 3, 7, len(self.STREAM)):
            fold = StreamFold(in_flight_chat(), 1)
            await StreamDemultiplexer().consume(pieces(*split_every(self.STREAM, size)), fold)
            results.add(fold.snapshot.model_dump_json())

        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_stops_after_error(self):
        stream = "".join([
            format_record(AnswerFrame(delta="par")),
            format_record(ErrorFrame(error="overloaded")),
            format_record(AnswerFrame(delta="tial")),
            format_record(DONE),
        ])
        fold = StreamFold(in_flight_chat(), 1)

        outcome = await StreamDemultiplexer().consume(pieces(stream), fold)

        assert outcome.error == "overloaded"
        assert outcome.done is False
        assert fold.assistant_message.content == "overloaded"
        assert fold.assistant_message.is_error is True

    @pytest.mark.asyncio
    async def test_body_ending_without_done(self):
        fold = StreamFold(in_flight_chat(), 1)

        outcome = await StreamDemultiplexer().consume(pieces(format_record(AnswerFrame(delta="cut"))), fold)

        assert outcome.done is False
        assert outcome.error is None
        assert fold.assistant_message.content == "cut"
