"""
Conversation CRUD endpoints.

Every route is scoped to the authenticated caller; conversations owned by
someone else behave as if they did not exist.
"""

import structlog
from fastapi import APIRouter, Depends, status

from ..core.auth import get_current_user_id
from ..core.dependencies import get_conversation_store
from ..core.exceptions import BadRequestError
from ..schemas.chat import (
    ApiResponse,
    ChatListResponse,
    ChatResponse,
    ChatSchema,
    CreateChatRequest,
    DeleteChatRequest,
    RenameChatRequest,
)
from ..services.conversation_store import ConversationStore

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post(
    "/chat/create",
    response_model=ChatResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
    tags=["conversations"],
)
async def create_chat(
    request: CreateChatRequest,
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_conversation_store),
) -> ChatResponse:
    """Create an empty conversation."""
    name = (request.name or "").strip()
    if not name:
        raise BadRequestError("Chat name is required")

    conversation = await store.create(user_id, name)

    return ChatResponse(
        success=True,
        message="Chat created successfully",
        chat=ChatSchema.from_document(conversation),
    )


@router.get(
    "/chat/get",
    response_model=ChatListResponse,
    response_model_by_alias=True,
    tags=["conversations"],
)
async def get_chats(
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_conversation_store),
) -> ChatListResponse:
    """List the caller's conversations, most recently updated first."""
    conversations = await store.list(user_id)

    logger.info("Retrieved conversations", user_id=user_id, count=len(conversations))

    return ChatListResponse(
        success=True,
        message="All chats fetched successfully",
        chats=[ChatSchema.from_document(c) for c in conversations],
    )


@router.put(
    "/chat/rename",
    response_model=ChatResponse,
    response_model_by_alias=True,
    tags=["conversations"],
)
async def rename_chat(
    request: RenameChatRequest,
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_conversation_store),
) -> ChatResponse:
    """Rename a conversation."""
    name = (request.name or "").strip()
    if not name or not request.chat_id:
        raise BadRequestError("Name and chatId are required")

    conversation = await store.rename(user_id, request.chat_id, name)

    return ChatResponse(
        success=True,
        message="Chat renamed successfully",
        chat=ChatSchema.from_document(conversation),
    )


@router.delete(
    "/chat/delete",
    response_model=ApiResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    tags=["conversations"],
)
async def delete_chat(
    request: DeleteChatRequest,
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_conversation_store),
) -> ApiResponse:
    """Delete a conversation; deleting an absent one still succeeds."""
    if not request.chat_id:
        raise BadRequestError("ChatId is required")

    await store.delete(user_id, request.chat_id)

    return ApiResponse(success=True, message="Chat deleted successfully")
