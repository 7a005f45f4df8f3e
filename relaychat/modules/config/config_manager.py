"""
Centralized configuration management using Pydantic settings.

Settings come from environment variables and an optional .env file. The
module-level ``config_manager`` serves ambient helpers (metrics logging);
application components get their settings handed to them by the AppFactory.
"""

import logging
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class AppSettings(BaseSettings):
    """Main application settings loaded from environment variables."""

    # Application settings
    app_name: str = "RelayChat"
    host: str = Field(default="127.0.0.1", validation_alias=AliasChoices("RELAYCHAT_HOST", "HOST"))
    port: int = 8000
    debug_mode: bool = False
    # Logging settings
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    feature_metrics_logging_enabled: bool = Field(
        False,
        description="Enable metrics logging (completions, title generation, message appends)",
        validation_alias=AliasChoices("FEATURE_METRICS_LOGGING_ENABLED"),
    )
    # Suppress LiteLLM verbose logging (independent of log_level)
    feature_suppress_litellm_logging: bool = Field(
        default=True,
        description="Suppress LiteLLM verbose stdout/debug output by setting LITELLM_LOG=ERROR",
        validation_alias=AliasChoices("FEATURE_SUPPRESS_LITELLM_LOGGING"),
    )

    # Conversation store
    chat_history_db_url: str = Field(
        default="duckdb:///data/chat_history.db",
        description="Database URL. Use duckdb:///path for local, postgresql://... for production",
        validation_alias="CHAT_HISTORY_DB_URL",
    )
    default_owner: str = Field(
        default="default-user",
        description="Owner used when no identity header is present (single-tenant deployments)",
        validation_alias="DEFAULT_OWNER",
    )
    auth_user_header: str = Field(default="X-User-Email", validation_alias="AUTH_USER_HEADER")
    default_conversation_title: str = Field(default="New Chat", validation_alias="DEFAULT_CONVERSATION_TITLE")
    max_message_length: int = Field(
        default=200_000,
        ge=1,
        description="Largest message content, in characters, the store accepts",
        validation_alias="MAX_MESSAGE_LENGTH",
    )

    # Local inference backend (/api/chat, /api/tags)
    local_backend_url: str = Field(default="http://localhost:11434", validation_alias="LOCAL_BACKEND_URL")
    local_backend_timeout: float = Field(default=120.0, gt=0, validation_alias="LOCAL_BACKEND_TIMEOUT")

    # Cloud routing backend (OpenAI-style chat completions)
    routed_backend_url: str = Field(default="https://openrouter.ai/api/v1", validation_alias="ROUTED_BACKEND_URL")
    routed_model: str = Field(default="openai/gpt-3.5-turbo", validation_alias="ROUTED_MODEL")
    routed_api_key: Optional[str] = Field(default=None, validation_alias="OPENROUTER_API_KEY")
    routed_backend_timeout: float = Field(default=120.0, gt=0, validation_alias="ROUTED_BACKEND_TIMEOUT")

    # Title generation
    title_model: str = Field(default="gemma3:4b", validation_alias="TITLE_MODEL")
    title_timeout: float = Field(default=30.0, gt=0, validation_alias="TITLE_TIMEOUT")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return (v or "INFO").upper()

    @field_validator("local_backend_url", "routed_backend_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "env_prefix": "",
        "populate_by_name": True,
    }


class ConfigManager:
    """Centralized configuration manager with proper error handling."""

    def __init__(self, app_settings: Optional[AppSettings] = None):
        self._app_settings: Optional[AppSettings] = app_settings

    @property
    def app_settings(self) -> AppSettings:
        """Get application settings (cached)."""
        if self._app_settings is None:
            try:
                self._app_settings = AppSettings()
                logger.info("Application settings loaded successfully")
            except Exception as e:
                logger.error(f"Failed to load application settings: {e}", exc_info=True)
                raise
        return self._app_settings

    def reload(self) -> AppSettings:
        """Drop cached settings and read the environment again."""
        self._app_settings = None
        return self.app_settings


# Global configuration manager instance
config_manager = ConfigManager()


def get_app_settings() -> AppSettings:
    """Get application settings."""
    return config_manager.app_settings
