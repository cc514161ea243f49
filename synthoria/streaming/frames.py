"""
Stream frame contract shared by the server multiplexer and the client demultiplexer.

Each frame travels as one event-stream record::

    data: {"type":"reasoning","delta":"..."}
    data: {"type":"reasoning_duration","durationMs":1234}
    data: {"type":"answer","delta":"..."}
    data: {"type":"error","error":"..."}
    data: [DONE]

Frames are transport envelopes only and are never persisted as-is.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ..core.constants import SSE_DONE


class ReasoningFrame(BaseModel):
    """Incremental reasoning text"""
    type: Literal["reasoning"] = "reasoning"
    delta: str


class AnswerFrame(BaseModel):
    """Incremental visible answer text"""
    type: Literal["answer"] = "answer"
    delta: str


class ReasoningDurationFrame(BaseModel):
    """Running reasoning duration; replaces, never accumulates"""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["reasoning_duration"] = "reasoning_duration"
    duration_ms: int = Field(..., ge=0, alias="durationMs")


class ErrorFrame(BaseModel):
    """Error text; always the last data frame of a stream"""
    type: Literal["error"] = "error"
    error: str


class DoneFrame:
    """Terminal sentinel, written as the literal ``[DONE]`` payload"""

    _instance: Optional["DoneFrame"] = None

    def __new__(cls) -> "DoneFrame":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DONE"


DONE = DoneFrame()

DataFrame = Annotated[
    Union[ReasoningFrame, AnswerFrame, ReasoningDurationFrame, ErrorFrame],
    Field(discriminator="type"),
]
Frame = Union[ReasoningFrame, AnswerFrame, ReasoningDurationFrame, ErrorFrame, DoneFrame]

_DATA_FRAME_ADAPTER: TypeAdapter = TypeAdapter(DataFrame)


def encode_frame(frame: Frame) -> str:
    """Serialize a frame to its record payload (the text after ``data:``)."""
    if isinstance(frame, DoneFrame):
        return SSE_DONE
    return frame.model_dump_json(by_alias=True)


def format_record(frame: Frame) -> str:
    """Serialize a frame to a complete record, blank-line terminated."""
    return f"data: {encode_frame(frame)}\n\n"


def decode_payload(payload: str) -> Optional[Frame]:
    """
    Parse one record payload.

    Returns ``DONE`` for the terminal marker, a data frame for a valid JSON
    frame, and None for anything malformed or of an unknown type.
    """
    payload = payload.strip()
    if payload == SSE_DONE:
        return DONE
    try:
        return _DATA_FRAME_ADAPTER.validate_json(payload)
    except ValidationError:
        return None
