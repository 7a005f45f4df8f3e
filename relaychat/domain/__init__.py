"""Domain layer - pure business models and errors."""

from .conversations.models import (
    DEFAULT_CONVERSATION_TITLE,
    Backend,
    Conversation,
    ConversationDetail,
    Message,
    MessageRole,
)
from .errors import (
    BackendDecodeError,
    BackendError,
    DomainError,
    InvalidArgumentError,
    NotFoundError,
    PersistenceError,
    SessionBusyError,
)

__all__ = [
    # Errors
    "DomainError",
    "NotFoundError",
    "InvalidArgumentError",
    "PersistenceError",
    "BackendError",
    "BackendDecodeError",
    "SessionBusyError",
    # Conversations
    "DEFAULT_CONVERSATION_TITLE",
    "Backend",
    "Conversation",
    "ConversationDetail",
    "Message",
    "MessageRole",
]
