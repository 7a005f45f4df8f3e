"""Derive a short conversation title from a message or a message history.

The generator asks the local backend for a structured ``{"title": ...}``
reply and always settles on a usable string: anything malformed, empty or too
long becomes ``TITLE_FALLBACK``. The one failure that escapes is the backend
not being reachable at all (``BackendError``), so callers can tell "could not
ask" apart from "asked and got junk".
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, StrictStr, ValidationError

from relaychat.core.log_sanitizer import preview_for_logging, sanitize_for_logging
from relaychat.core.metrics_logger import log_metric
from relaychat.domain.errors import BackendDecodeError, InvalidArgumentError
from relaychat.modules.llm.chat_proxy import strip_messages
from relaychat.modules.llm.local_backend import LocalBackend

logger = logging.getLogger(__name__)

TITLE_FALLBACK = "Chat"
MAX_TITLE_LENGTH = 100

TITLE_SYSTEM_PROMPT = (
    "Based on the following conversation history (or user message), generate a very short, "
    "concise title (3-5 words maximum) for the conversation. Focus on the main topic. "
    'Respond ONLY with a JSON object containing a single key "title" with the generated title '
    'as its string value. For example: { "title": "Generated Title" }.'
)

TITLE_RESPONSE_FORMAT: Dict[str, Any] = {
    "type": "object",
    "properties": {"title": {"type": "string"}},
    "required": ["title"],
}

# Plain-text salvage: leading quote/brace/"title:" debris, trailing quote/brace debris
_SALVAGE_PATTERN = re.compile(r'^["{\n\t title:]+|["}\n\t ]+$')
_QUOTE_PATTERN = re.compile(r"^[\"']|[\"']$")

TitleSource = Union[str, Sequence[Any]]


class TitleReply(BaseModel):
    """The structured reply requested with TITLE_RESPONSE_FORMAT."""
    title: StrictStr


def parse_title_content(content: str) -> str:
    """Turn raw model output into a title, falling back to ``TITLE_FALLBACK``."""
    if not content:
        return TITLE_FALLBACK

    try:
        reply = TitleReply.model_validate_json(content)
    except ValidationError as exc:
        if not any(err["type"] == "json_invalid" for err in exc.errors()):
            logger.warning("Title reply JSON has no title string: %s", preview_for_logging(content, 200))
            return TITLE_FALLBACK
        logger.debug("Title reply is not JSON; salvaging plain text")
        title = _SALVAGE_PATTERN.sub("", content.strip())
    else:
        title = reply.title.strip()

    if not title or len(title) > MAX_TITLE_LENGTH:
        logger.warning("Generated title is empty or too long (%d chars)", len(title))
        return TITLE_FALLBACK

    return _QUOTE_PATTERN.sub("", title)


class TitleGenerator:
    """Generates conversation titles through the local backend."""

    def __init__(self, backend: LocalBackend, model: str = "gemma3:4b", timeout: Optional[float] = None):
        self.backend = backend
        self.model = model
        self.timeout = timeout

    def build_messages(self, source: TitleSource) -> List[Dict[str, str]]:
        prepared = [{"role": "system", "content": TITLE_SYSTEM_PROMPT}]
        if isinstance(source, str):
            prepared.append({"role": "user", "content": source})
        else:
            prepared.extend(strip_messages(source))
        return prepared

    async def generate_title(self, source: TitleSource, owner: Optional[str] = None) -> str:
        """Generate a title for a message or a history.

        Raises:
            InvalidArgumentError: empty input
            BackendError: the backend could not be reached or answered non-2xx
        """
        if isinstance(source, str):
            if not source.strip():
                raise InvalidArgumentError("Message content is required to generate a title", code="missing_content")
        elif not source:
            raise InvalidArgumentError("A non-empty message history is required to generate a title", code="missing_messages")

        messages = self.build_messages(source)
        try:
            content = await self.backend.chat(
                messages,
                self.model,
                response_format=TITLE_RESPONSE_FORMAT,
                stream=False,
                timeout=self.timeout,
            )
        except BackendDecodeError as exc:
            logger.warning("Title backend returned an undecodable reply: %s", exc.message)
            title = TITLE_FALLBACK
        else:
            title = parse_title_content(content)

        log_metric(
            "title_generated",
            owner,
            model=self.model,
            input_messages=len(messages) - 1,
            fallback=title == TITLE_FALLBACK,
        )
        return title
