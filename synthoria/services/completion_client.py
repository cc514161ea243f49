"""
HTTP client for the OpenRouter chat-completions API.

OpenRouter speaks the OpenAI wire format. Streaming replies arrive as
server-sent events whose ``data:`` payloads are completion chunks; reasoning
models add a ``reasoning_details`` list to each chunk delta.
"""

import json
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx
import structlog
from pydantic import BaseModel, ConfigDict

from ..core.config import Settings, get_settings
from ..core.constants import ALLOWED_MODELS, SSE_COMMENT_PREFIX, SSE_DATA_PREFIX, SSE_DONE

logger = structlog.get_logger(__name__)


class CompletionMessage(BaseModel):
    """Message sent to the completions API"""
    role: str
    content: str


class CompletionRequest(BaseModel):
    """Request body for /chat/completions"""
    model: str
    messages: List[CompletionMessage]
    stream: bool = True
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class CompletionChunk(BaseModel):
    """One streamed completion chunk; unknown provider fields are kept"""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    object: Optional[str] = "chat.completion.chunk"
    model: Optional[str] = None
    choices: List[Dict[str, Any]] = []
    error: Optional[Any] = None
    created: Optional[int] = None


class CompletionClient:
    """Streaming client for an OpenAI-compatible provider"""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings or get_settings()
        self.base_url = self.settings.openrouter_base_url
        self.api_key = self.settings.openrouter_api_key

        headers = {
            "User-Agent": "Synthoria/1.0",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        if self.settings.openrouter_app_url:
            headers["HTTP-Referer"] = self.settings.openrouter_app_url
        if self.settings.openrouter_app_title:
            headers["X-Title"] = self.settings.openrouter_app_title

        if client is None:
            client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    timeout=self.settings.openrouter_timeout,
                    connect=self.settings.openrouter_connect_timeout,
                    read=self.settings.openrouter_read_timeout,
                    write=10.0
                ),
                limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
                http2=True,
            )
        client.headers.update(headers)
        self.client = client

        self.set_api_key(self.api_key)

    def set_api_key(self, api_key: Optional[str]) -> None:
        """Update the API key used for outbound requests."""
        self.api_key = api_key or ""
        if self.api_key:
            self.client.headers["Authorization"] = f"Bearer {self.api_key}"
        else:
            self.client.headers.pop("Authorization", None)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.client.aclose()

    @staticmethod
    def _get_model_name(model: str) -> str:
        """Map an allow-listed key to the provider model id."""
        return ALLOWED_MODELS.get(model, model)

    async def chat_completion_stream(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> AsyncGenerator[CompletionChunk, None]:
        """
        Open one streaming completion and yield raw provider chunks.

        Keep-alive comments are skipped and unparseable payloads are logged and
        dropped. The generator ends at ``[DONE]`` or when the body ends.

        Raises:
            ValueError: if no API key is configured
            httpx.HTTPError: transport failures and non-2xx responses
        """
        if not self.api_key:
            raise ValueError("OpenRouter API key is required but not configured")

        request_data = CompletionRequest(
            model=self._get_model_name(model),
            messages=[CompletionMessage(role=m["role"], content=m["content"]) for m in messages],
            stream=True,
            temperature=temperature,
            max_tokens=max_tokens,
        ).model_dump(exclude_none=True)

        logger.info(
            "Starting completion stream",
            model=request_data["model"],
            message_count=len(messages)
        )

        url = f"{self.base_url.rstrip('/')}/chat/completions"
        chunk_count = 0
        async with self.client.stream("POST", url, json=request_data) as response:
            if response.status_code >= 400:
                body = await response.aread()
                logger.error(
                    "Completion stream rejected",
                    status_code=response.status_code,
                    body=body.decode("utf-8", errors="replace")[:500]
                )
            response.raise_for_status()

            async for line in response.aiter_lines():
                if not line or line.startswith(SSE_COMMENT_PREFIX):
                    continue
                if not line.startswith(SSE_DATA_PREFIX):
                    continue

                data = line[len(SSE_DATA_PREFIX):].strip()
                if data == SSE_DONE:
                    break

                try:
                    chunk = CompletionChunk(**json.loads(data))
                except (ValueError, TypeError) as e:
                    logger.warning("Error parsing stream chunk", error=str(e))
                    continue

                chunk_count += 1
                yield chunk

        logger.info("Completion stream finished", model=request_data["model"], chunks=chunk_count)

    async def health_check(self) -> bool:
        """Verify the provider answers the models listing."""
        if not self.api_key:
            return False

        try:
            response = await self.client.get(f"{self.base_url.rstrip('/')}/models")
            return response.status_code == 200
        except httpx.HTTPError:
            return False


def build_messages(user_prompt: str, system_text: str) -> List[Dict[str, str]]:
    """
    Build the upstream message list: the system instruction and a single user turn.

    Example:
        >>> build_messages("Hi", "Be brief")
        [{'role': 'system', 'content': 'Be brief'}, {'role': 'user', 'content': 'Hi'}]
    """
    return [
        {"role": "system", "content": system_text},
        {"role": "user", "content": user_prompt},
    ]


# Process-wide client instance
_completion_client: Optional[CompletionClient] = None


async def get_completion_client() -> CompletionClient:
    """Return the shared completion client, creating it on first use."""
    global _completion_client

    if _completion_client is None:
        _completion_client = CompletionClient()

    return _completion_client


async def close_completion_client() -> None:
    """Close the shared completion client."""
    global _completion_client

    if _completion_client:
        await _completion_client.client.aclose()
        _completion_client = None
