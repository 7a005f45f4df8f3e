"""LiteLLM adapter for the cloud routing backend (OpenAI-style completions)."""

import logging
import warnings
from typing import Dict, List, Optional

# litellm touches Pydantic attributes deprecated in 2.11 on every response;
# the resulting warnings drown real ones in the logs.
from pydantic import PydanticDeprecatedSince211

warnings.filterwarnings("ignore", category=PydanticDeprecatedSince211)

import litellm  # noqa: E402
from litellm import acompletion  # noqa: E402

from relaychat.domain.errors import BackendDecodeError, BackendError  # noqa: E402

from .response_decoding import decode_routed_completion  # noqa: E402

logger = logging.getLogger(__name__)

BACKEND_NAME = "routed"

litellm.drop_params = True  # Drop unsupported params instead of erroring


class RoutedBackend:
    """Calls the routing API through LiteLLM's ``openrouter/`` provider.

    The bearer key comes from settings (``OPENROUTER_API_KEY``); without one
    every call fails with ``BackendError`` before any network I/O.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://openrouter.ai/api/v1",
        default_model: str = "openai/gpt-3.5-turbo",
        timeout: float = 120.0,
        debug_mode: bool = False,
        suppress_logging: bool = True,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self.timeout = timeout

        # The suppression flag wins over debug mode
        litellm.set_verbose = False if suppress_logging else debug_mode

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    @staticmethod
    def _get_litellm_model_name(model: str) -> str:
        """Route through LiteLLM's openrouter provider."""
        if model.startswith("openrouter/"):
            return model
        return f"openrouter/{model}"

    async def chat(self, messages: List[Dict[str, str]], model: Optional[str] = None) -> str:
        """Request a completion and return its content."""
        if not self.api_key:
            raise BackendError(
                "Routed backend API key (OPENROUTER_API_KEY) is not configured",
                backend=BACKEND_NAME,
                code="missing_api_key",
            )

        model_name = model or self.default_model
        litellm_model = self._get_litellm_model_name(model_name)
        total_chars = sum(len(str(msg.get("content", ""))) for msg in messages)
        logger.info("[ROUTED] chat: model=%s, %d messages, %d chars", model_name, len(messages), total_chars)

        try:
            response = await acompletion(
                model=litellm_model,
                messages=messages,
                api_key=self.api_key,
                api_base=self.base_url,
                timeout=self.timeout,
            )
        except Exception as exc:
            status_code = getattr(exc, "status_code", None)
            logger.error("[ROUTED] Error calling %s: %s", litellm_model, exc, exc_info=True)
            raise BackendError(
                f"Routed backend call failed: {exc}",
                status_code=status_code if isinstance(status_code, int) else None,
                backend=BACKEND_NAME,
            ) from exc

        try:
            content = decode_routed_completion(response)
        except BackendDecodeError:
            logger.error("[ROUTED] Undecodable completion from %s", litellm_model)
            raise

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("[ROUTED] response preview: '%s%s'", content[:200], "..." if len(content) > 200 else "")
        else:
            logger.info("[ROUTED] response length: %d chars", len(content))
        return content
