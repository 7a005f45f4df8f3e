"""Chat Proxy: one completion contract over the local and routed backends."""

import logging
from typing import Any, Dict, Iterable, List, Optional

from relaychat.core.metrics_logger import log_metric
from relaychat.domain.conversations.models import Backend, Message, MessageRole
from relaychat.domain.errors import InvalidArgumentError

from .local_backend import LocalBackend
from .routed_backend import RoutedBackend

logger = logging.getLogger(__name__)


def strip_messages(messages: Iterable[Any]) -> List[Dict[str, str]]:
    """Reduce messages to ``{role, content}`` pairs, validating each role.

    Accepts domain ``Message`` objects or mappings; provenance (ids, model,
    timestamps) never reaches a backend.
    """
    stripped: List[Dict[str, str]] = []
    for msg in messages:
        if isinstance(msg, Message):
            stripped.append(msg.to_backend_dict())
            continue
        if not isinstance(msg, dict):
            raise InvalidArgumentError("Each message must be an object with role and content", code="invalid_message")
        role = MessageRole.parse(msg.get("role"))
        content = msg.get("content")
        if not isinstance(content, str):
            raise InvalidArgumentError("Message content must be a string", code="invalid_content")
        stripped.append({"role": role.value, "content": content})
    return stripped


class ChatProxy:
    """Forward a message list to the selected backend and return its content."""

    def __init__(self, local: LocalBackend, routed: RoutedBackend):
        self.local = local
        self.routed = routed

    async def complete(
        self,
        messages: Iterable[Any],
        model: Optional[str],
        backend: str,
        owner: Optional[str] = None,
    ) -> str:
        """Complete a conversation.

        Raises:
            InvalidArgumentError: unknown backend, bad message, or no model for ``local``
            BackendError: upstream failure or non-2xx status
        """
        selected = Backend.parse(backend)
        payload = strip_messages(messages)

        if selected is Backend.LOCAL:
            if not model or not model.strip():
                raise InvalidArgumentError("Please select a model first", code="missing_model")
            content = await self.local.chat(payload, model)
            model_used = model
        else:
            content = await self.routed.chat(payload, model or None)
            model_used = model or self.routed.default_model

        log_metric(
            "completion",
            owner,
            backend=selected.value,
            model=model_used,
            message_count=len(payload),
            response_length=len(content),
        )
        return content

    async def list_local_models(self) -> Dict[str, Any]:
        return await self.local.list_models()
