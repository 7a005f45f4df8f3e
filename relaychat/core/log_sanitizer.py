"""
Log sanitizing and request identity helpers.
"""

import logging
import re
from typing import Any

from fastapi import Request

logger = logging.getLogger(__name__)

_CONTROL_CHARS_RE = re.compile(r'[\x00-\x1f\x7f-\x9f]')
# Matches Unicode line separators (LINE SEPARATOR and PARAGRAPH SEPARATOR)
_UNICODE_NEWLINES_RE = re.compile(r'[\u2028\u2029]')
# Matches explicit CR, LF, and CRLF for maximal coverage
_STANDARD_NEWLINES_RE = re.compile(r'(\r\n|\r|\n)')


def sanitize_for_logging(value: Any) -> str:
    """
    Sanitize a value for safe logging by removing newlines and control characters.

    Conversation titles, search queries and header values are user controlled,
    so they go through here before reaching a log line.

    Examples:
        >>> sanitize_for_logging("Hello\\nWorld")
        'HelloWorld'
        >>> sanitize_for_logging("Test\\x1b[31mRed\\x1b[0m")
        'TestRed'
        >>> sanitize_for_logging("Fake\u2028Log")
        'FakeLog'
        >>> sanitize_for_logging(123)
        '123'
    """
    if value is None:
        return ''
    if not isinstance(value, str):
        value = str(value)
    value = _CONTROL_CHARS_RE.sub('', value)
    value = _UNICODE_NEWLINES_RE.sub('', value)
    value = _STANDARD_NEWLINES_RE.sub('', value)
    return value


def preview_for_logging(value: Any, limit: int = 80) -> str:
    """Sanitized, truncated preview of free text for DEBUG logs."""
    text = sanitize_for_logging(value)
    return text if len(text) <= limit else f"{text[:limit]}..."


async def get_current_user(request: Request) -> str:
    """Resolve the owner of a request.

    Uses the configured identity header when a fronting proxy sets it,
    otherwise the single-tenant default owner.
    """
    factory = getattr(request.app.state, "app_factory", None)
    if factory is not None:
        settings = factory.config_manager.app_settings
    else:
        from relaychat.modules.config import get_app_settings
        settings = get_app_settings()

    owner = (request.headers.get(settings.auth_user_header) or "").strip()
    if owner:
        return owner
    return settings.default_owner
