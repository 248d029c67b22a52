"""
Application configuration using Pydantic Settings.
All environment variables are loaded here with sensible defaults.

The Settings instance is built once at process start and handed to every
component constructor; services never import the module-level instance.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


MIB = 1024 * 1024

# Declared content types accepted by the upload endpoint
DEFAULT_ALLOWED_TYPES = [
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "video/mp4",
    "video/webm",
    "video/quicktime",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: str = "dev"
    log_level: str = "INFO"

    # Redis key-value store (usage stats, rate windows, API keys)
    # Left unset, the store is "not configured": reads come back empty,
    # rate limiting fails open and API key creation is refused.
    redis_url: Optional[str] = None

    # Upstream object relay (Telegram Bot API compatible)
    relay_api_base: str = "https://api.telegram.org"
    relay_bot_token: Optional[str] = None
    relay_chat_id: Optional[str] = None
    relay_retry_base_delay: float = 1.0  # seconds, multiplied by attempt number

    # Operator (dashboard) credentials
    admin_username: Optional[str] = None
    admin_password: Optional[str] = None

    # Public URLs
    public_base_url: Optional[str] = None  # e.g. https://files.example.com
    preview_index_path: Optional[str] = None  # built frontend index.html

    # Upload admission
    max_upload_bytes: int = 5 * MIB
    allowed_content_types: list[str] = DEFAULT_ALLOWED_TYPES

    # Rate limiting (fixed window)
    rate_window_seconds: int = 3600
    anonymous_upload_limit: int = 30
    api_key_upload_limit: int = 200

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def rate_window_ms(self) -> int:
        return self.rate_window_seconds * 1000


# Global settings instance
settings = Settings()
