"""Interfaces layer - protocols and contracts."""

from .llm import ChatCompletionProtocol, TitleServiceProtocol
from .store import ConversationStoreProtocol

__all__ = [
    "ChatCompletionProtocol",
    "TitleServiceProtocol",
    "ConversationStoreProtocol",
]
