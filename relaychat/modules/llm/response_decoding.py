"""Tagged decoding of backend response bodies.

Each backend has its own wire shape. The decoders here validate that shape
with pydantic and yield one flat ``content`` string, or raise
``BackendDecodeError``. Callers never inspect raw payloads themselves.

Local backend (``/api/chat``):
    - a single JSON object ``{"message": {"role": ..., "content": ...}, ...}``
    - or newline-delimited JSON chunks, each carrying an incremental
      ``message.content`` fragment; fragments are concatenated in order.

Routed backend (OpenAI-style):
    ``{"choices": [{"message": {"content": ...}}]}``
"""

import json
import logging
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from relaychat.domain.errors import BackendDecodeError

logger = logging.getLogger(__name__)


class LocalChatMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: Optional[str] = None
    content: str = ""


class LocalChatChunk(BaseModel):
    """One line of a streamed local reply."""
    model_config = ConfigDict(extra="ignore")

    model: Optional[str] = None
    message: Optional[LocalChatMessage] = None
    done: bool = False
    error: Optional[str] = None


class LocalChatReply(LocalChatChunk):
    """A complete, non-streamed local reply. ``message`` is mandatory."""
    message: LocalChatMessage


class RoutedMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: Optional[str] = None
    content: Optional[str] = None


class RoutedChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: RoutedMessage


class RoutedCompletion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    model: Optional[str] = None
    choices: List[RoutedChoice] = Field(default_factory=list)


def _raise_if_error(chunk: LocalChatChunk) -> None:
    if chunk.error:
        raise BackendDecodeError(
            f"Local backend reported an error: {chunk.error}",
            backend="local",
            code="backend_reported_error",
        )


def _decode_local_single(data: Any) -> str:
    try:
        reply = LocalChatReply.model_validate(data)
    except ValidationError as exc:
        # An error-only object fails validation too; report the error text.
        if isinstance(data, dict) and data.get("error"):
            _raise_if_error(LocalChatChunk(error=str(data["error"])))
        raise BackendDecodeError(
            f"Unexpected local reply shape: {exc.error_count()} validation error(s)",
            backend="local",
        ) from exc
    _raise_if_error(reply)
    return reply.message.content


def _decode_local_stream(lines: List[str]) -> str:
    parts: List[str] = []
    for line_number, line in enumerate(lines, start=1):
        try:
            chunk = LocalChatChunk.model_validate_json(line)
        except ValidationError as exc:
            raise BackendDecodeError(
                f"Malformed local reply chunk on line {line_number}",
                backend="local",
            ) from exc
        _raise_if_error(chunk)
        if chunk.message is not None:
            parts.append(chunk.message.content)
    logger.debug("Decoded %d local reply chunks", len(lines))
    return "".join(parts)


def decode_local_chat(body: str) -> str:
    """Decode a local ``/api/chat`` body into its content string."""
    text = (body or "").strip()
    if not text:
        raise BackendDecodeError("Empty reply from local backend", backend="local")

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        return _decode_local_stream(lines)

    if not isinstance(data, dict):
        raise BackendDecodeError("Local reply is not a JSON object", backend="local")
    return _decode_local_single(data)


def decode_routed_completion(payload: Any) -> str:
    """Decode an OpenAI-style completion (dict or LiteLLM response object)."""
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump()
    try:
        completion = RoutedCompletion.model_validate(payload)
    except ValidationError as exc:
        raise BackendDecodeError(
            f"Unexpected routed reply shape: {exc.error_count()} validation error(s)",
            backend="routed",
        ) from exc
    if not completion.choices:
        raise BackendDecodeError("Routed reply contained no choices", backend="routed")
    return completion.choices[0].message.content or ""
