"""
ASGI entry point: ``uvicorn relaychat.main:app``.

Configures process logging and instrumentation, then builds the app.
Tests build their own app with ``relaychat.server.create_app`` instead.
"""

# Suppress LiteLLM verbose logging BEFORE any transitive import of litellm.
# litellm._logging reads LITELLM_LOG at import time and defaults to DEBUG.
import os
from pathlib import Path as _Path

from dotenv import dotenv_values as _dotenv_values

_env_path = _Path.cwd() / ".env"
_env_values = _dotenv_values(_env_path) if _env_path.exists() else {}
_suppress_litellm = (
    os.environ.get("FEATURE_SUPPRESS_LITELLM_LOGGING")
    or _env_values.get("FEATURE_SUPPRESS_LITELLM_LOGGING")
    or "true"
).lower() in ("true", "1", "yes")

if _suppress_litellm and "LITELLM_LOG" not in os.environ:
    os.environ["LITELLM_LOG"] = "ERROR"

del _Path, _dotenv_values, _env_path, _env_values, _suppress_litellm

# ruff: noqa: E402
import logging

from dotenv import load_dotenv

from relaychat.core.otel_config import setup_opentelemetry
from relaychat.infrastructure.app_factory import AppFactory
from relaychat.server import create_app
from relaychat.version import VERSION

# Secrets such as OPENROUTER_API_KEY must be visible to /api/check-key
load_dotenv()

app_factory = AppFactory()
_settings = app_factory.config_manager.app_settings

otel_config = setup_opentelemetry(
    "relaychat-backend",
    VERSION,
    log_level=_settings.log_level,
    debug_mode=_settings.debug_mode,
)

logger = logging.getLogger(__name__)

app = create_app(app_factory)
otel_config.instrument_fastapi(app)
otel_config.instrument_httpx()

logger.info("RelayChat app created (store: %s)", _settings.chat_history_db_url.split("://", 1)[0])
