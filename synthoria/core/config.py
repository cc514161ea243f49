"""
Configuration management for the Synthoria API.
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Application
    app_name: str = Field(default="Synthoria API")
    app_version: str = Field(default="0.1.0")
    default_chat_name: str = Field(default="New Chat", description="Name of the implicitly created chat")

    # Database (MongoDB)
    mongodb_url: str = Field(
        default="mongodb://localhost:27017/synthoria",
        description="MongoDB connection URL"
    )
    db_min_pool_size: int = Field(default=1, description="MongoDB min connection pool size")
    db_max_pool_size: int = Field(default=50, description="MongoDB max connection pool size")
    db_server_selection_timeout_ms: int = Field(default=5000, description="MongoDB server selection timeout")
    db_connect_timeout_ms: int = Field(default=10000, description="MongoDB connect timeout")

    # OpenRouter (OpenAI-compatible completions)
    openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1", description="OpenRouter API base URL")
    openrouter_api_key: str = Field(default="", description="OpenRouter API key")
    openrouter_timeout: float = Field(default=60.0, description="OpenRouter total request timeout")
    openrouter_connect_timeout: float = Field(default=10.0, description="OpenRouter connect timeout")
    openrouter_read_timeout: float = Field(default=120.0, description="OpenRouter read timeout between chunks")
    openrouter_app_url: str = Field(default="", description="Sent as HTTP-Referer for OpenRouter attribution")
    openrouter_app_title: str = Field(default="Synthoria", description="Sent as X-Title for OpenRouter attribution")

    # Authentication (tokens are issued by the external identity provider)
    auth_jwt_key: str = Field(default="", description="Public key (PEM) or shared secret used to verify session tokens")
    auth_jwt_algorithm: str = Field(default="RS256", description="Session token signing algorithm")
    auth_jwt_issuer: str = Field(default="", description="Expected token issuer, empty to skip the check")

    # Identity webhook
    clerk_webhook_secret: str = Field(default="", description="Svix signing secret for identity webhooks")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )
    allowed_hosts: List[str] = Field(
        default=["*"],
        description="Allowed hosts"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or console")


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
