"""Completion and title-generation protocols."""

from typing import Dict, List, Optional, Protocol, Sequence, runtime_checkable


@runtime_checkable
class ChatCompletionProtocol(Protocol):
    """Protocol for chat completions across backends."""

    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str],
        backend: str,
    ) -> str:
        """Return the assistant reply for ``messages``."""
        ...


@runtime_checkable
class TitleServiceProtocol(Protocol):
    """Generates a title for a conversation and stores it."""

    async def generate_title(
        self,
        conversation_id: str,
        messages: Sequence[Dict[str, str]],
    ) -> str:
        """Return the title that was saved for the conversation."""
        ...
