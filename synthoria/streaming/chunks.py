"""
Classification of raw provider chunks into a closed set of events.

A single OpenRouter chunk can carry several things at once (reasoning detail
entries and answer text, or an error next to a finish reason), so
``classify_chunk`` returns the events in the order they must be handled:
reasoning, then answer, then error, then finish.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

import structlog

from ..services.completion_client import CompletionChunk

logger = structlog.get_logger(__name__)

REASONING_TEXT = "reasoning.text"
REASONING_SUMMARY = "reasoning.summary"
REASONING_ENCRYPTED = "reasoning.encrypted"


@dataclass(frozen=True)
class ReasoningDelta:
    text: str


@dataclass(frozen=True)
class AnswerDelta:
    text: str


@dataclass(frozen=True)
class ProviderError:
    message: str


@dataclass(frozen=True)
class FinishSignal:
    reason: str


ChunkEvent = Union[ReasoningDelta, AnswerDelta, ProviderError, FinishSignal]


def _reasoning_fragments(delta: Mapping[str, Any]) -> List[str]:
    details = delta.get("reasoning_details")
    if isinstance(details, list):
        fragments = []
        for entry in details:
            if not isinstance(entry, Mapping):
                continue
            kind = entry.get("type")
            if kind == REASONING_TEXT:
                text = entry.get("text")
            elif kind == REASONING_SUMMARY:
                text = entry.get("summary")
            else:
                # Encrypted or unknown entries carry nothing displayable
                continue
            if isinstance(text, str) and text:
                fragments.append(text)
        return fragments

    # Providers that only send the flat field
    flat = delta.get("reasoning")
    if isinstance(flat, str) and flat:
        return [flat]
    return []


def _error_message(error: Any) -> str:
    if isinstance(error, Mapping):
        message = error.get("message")
        if message:
            return str(message)
        code = error.get("code")
        if code is not None:
            return f"Provider error {code}"
    if isinstance(error, str) and error:
        return error
    return "The model provider returned an error"


def classify_chunk(chunk: Union[CompletionChunk, Dict[str, Any]]) -> List[ChunkEvent]:
    """
    Decode one provider chunk into events.

    Example:
        >>> classify_chunk({"choices": [{"delta": {"content": "Hi"}}]})
        [AnswerDelta(text='Hi')]
    """
    if isinstance(chunk, CompletionChunk):
        chunk = chunk.model_dump()

    events: List[ChunkEvent] = []
    choices = chunk.get("choices") or []
    choice: Mapping[str, Any] = choices[0] if choices and isinstance(choices[0], Mapping) else {}
    delta: Mapping[str, Any] = choice.get("delta") or {}

    for fragment in _reasoning_fragments(delta):
        events.append(ReasoningDelta(fragment))

    content = delta.get("content")
    if isinstance(content, str) and content:
        events.append(AnswerDelta(content))

    finish_reason: Optional[str] = choice.get("finish_reason")
    error = chunk.get("error")
    if error is not None or finish_reason == "error":
        events.append(ProviderError(_error_message(error)))
    elif finish_reason:
        events.append(FinishSignal(finish_reason))

    return events
