"""
Streaming chat endpoint.

POST /api/chat/ai appends the user's prompt to a conversation and answers with
an event stream of reasoning, answer, duration and error frames.
"""

from typing import AsyncGenerator, Dict

import structlog
from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from ..core.auth import get_current_user_id
from ..core.dependencies import get_conversation_store
from ..core.exceptions import BadRequestError
from ..schemas.chat import ChatStreamRequest
from ..services.completion_client import CompletionClient, get_completion_client
from ..services.conversation_store import ConversationStore
from ..streaming.frames import encode_frame
from ..streaming.multiplexer import ChatStream, ChatStreamMultiplexer

logger = structlog.get_logger(__name__)
router = APIRouter()

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def _event_generator(stream: ChatStream) -> AsyncGenerator[Dict[str, str], None]:
    async for frame in stream.frames():
        yield {"data": encode_frame(frame)}


@router.post("/chat/ai", tags=["chat"])
async def stream_chat(
    request: ChatStreamRequest,
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_conversation_store),
    client: CompletionClient = Depends(get_completion_client),
) -> EventSourceResponse:
    """
    Stream one assistant reply.

    Rejected before streaming starts:
        - 400 ``Invalid Model`` for a model key outside the allow-list
        - 404 ``Chat Not Found`` for an absent or foreign conversation
    """
    if not request.chat_id or not request.content:
        raise BadRequestError("ChatId and content are required")

    multiplexer = ChatStreamMultiplexer(store, client)
    stream = await multiplexer.open(
        user_id=user_id,
        chat_id=request.chat_id,
        content=request.content,
        model_key=request.model or "",
    )

    return EventSourceResponse(
        _event_generator(stream),
        headers=STREAM_HEADERS,
        sep="\n",
    )
