"""
HTTP client for the Synthoria API, used by interactive front ends.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
import structlog

from ..schemas.chat import ChatSchema

logger = structlog.get_logger(__name__)


class ChatApiError(Exception):
    """Request rejected by the API; ``message`` is the envelope's error text."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ChatApiClient:
    """Conversation CRUD and prompt streaming for one signed-in user"""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        if client is None:
            client = httpx.AsyncClient(base_url=base_url, timeout=httpx.Timeout(timeout, read=None))
        self.client = client
        self.set_token(token)

    def set_token(self, token: Optional[str]) -> None:
        if token:
            self.client.headers["Authorization"] = f"Bearer {token}"
        else:
            self.client.headers.pop("Authorization", None)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.client.aclose()

    @staticmethod
    def _error_from(response: httpx.Response) -> ChatApiError:
        try:
            body = response.json()
        except ValueError:
            body = None

        message = None
        if isinstance(body, dict):
            message = body.get("error") or body.get("message")
        if not isinstance(message, str) or not message:
            message = f"Request failed with status {response.status_code}"
        return ChatApiError(message, response.status_code)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        response = await self.client.request(method, url, **kwargs)
        if response.status_code >= 400:
            error = self._error_from(response)
            logger.warning("API request rejected", method=method, url=url, status_code=response.status_code, error=error.message)
            raise error

        body = response.json()
        if not body.get("success", False):
            raise ChatApiError(body.get("error") or "Request failed", response.status_code)
        return body

    async def list_chats(self) -> List[ChatSchema]:
        body = await self._request("GET", "/api/chat/get")
        return [ChatSchema.model_validate(c) for c in body.get("chats", [])]

    async def create_chat(self, name: str) -> ChatSchema:
        body = await self._request("POST", "/api/chat/create", json={"name": name})
        return ChatSchema.model_validate(body["chat"])

    async def rename_chat(self, chat_id: str, name: str) -> ChatSchema:
        body = await self._request("PUT", "/api/chat/rename", json={"chatId": chat_id, "name": name})
        return ChatSchema.model_validate(body["chat"])

    async def delete_chat(self, chat_id: str) -> None:
        await self._request("DELETE", "/api/chat/delete", json={"chatId": chat_id})

    @asynccontextmanager
    async def stream_prompt(self, chat_id: str, content: str, model: str) -> AsyncIterator[httpx.Response]:
        """
        Open the event stream for one prompt.

        Raises:
            ChatApiError: the request was rejected before streaming started
        """
        payload = {"chatId": chat_id, "content": content, "model": model}
        async with self.client.stream("POST", "/api/chat/ai", json=payload) as response:
            if response.status_code >= 400:
                await response.aread()
                raise self._error_from(response)
            yield response
