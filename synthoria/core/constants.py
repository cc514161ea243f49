"""
Static values shared by the API and the client.
"""

from typing import Dict, Optional

# Model keys accepted from clients, mapped to OpenRouter model ids
ALLOWED_MODELS: Dict[str, str] = {
    "gpt-5": "openai/gpt-5",
    "claude-sonnet-4": "anthropic/claude-sonnet-4",
    "gemini-2.5-pro": "google/gemini-2.5-pro",
    "grok-4": "x-ai/grok-4",
}

DEFAULT_MODEL = "gpt-5"

SYSTEM_PROMPT = (
    "You are Synthoria, a helpful AI assistant. "
    "Always format your answers as GitHub-flavored Markdown: use headings for "
    "sections, bulleted or numbered lists for steps and options, tables for "
    "comparisons, and fenced code blocks with a language tag for any code. "
    "Keep paragraphs short."
)

# Server-sent event framing
SSE_DATA_PREFIX = "data:"
SSE_COMMENT_PREFIX = ":"
SSE_DONE = "[DONE]"


def resolve_model(model_key: Optional[str]) -> Optional[str]:
    """Return the provider model id for an allow-listed key, else None."""
    if not model_key:
        return None
    return ALLOWED_MODELS.get(model_key)
