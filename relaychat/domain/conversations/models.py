"""Domain models for conversations and their messages."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from relaychat.domain.errors import InvalidArgumentError

DEFAULT_CONVERSATION_TITLE = "New Chat"


class MessageRole(Enum):
    """Closed set of message roles."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

    @classmethod
    def parse(cls, value: Any) -> "MessageRole":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(r.value for r in cls)
            raise InvalidArgumentError(
                f"Invalid message role {value!r}; expected one of: {allowed}",
                code="invalid_role",
            ) from None


class Backend(Enum):
    """Which text-generation provider handles a completion."""
    LOCAL = "local"
    ROUTED = "routed"

    @classmethod
    def parse(cls, value: Any) -> "Backend":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidArgumentError(
                f"Unknown backend {value!r}; expected 'local' or 'routed'",
                code="invalid_backend",
            ) from None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class Conversation:
    """A titled thread of messages belonging to one owner."""
    id: str
    owner: str
    title: str
    model: Optional[str] = None
    backend: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    message_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation."""
        return {
            "id": self.id,
            "owner": self.owner,
            "title": self.title,
            "model": self.model,
            "llm": self.backend,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "message_count": self.message_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Conversation":
        return cls(
            id=str(data["id"]),
            owner=data.get("owner", ""),
            title=data.get("title") or "",
            model=data.get("model"),
            backend=data.get("llm", data.get("backend")),
            created_at=_parse_dt(data.get("created_at")),
            updated_at=_parse_dt(data.get("updated_at")),
            message_count=int(data.get("message_count") or 0),
        )


@dataclass
class Message:
    """One persisted turn in a conversation. Immutable once stored."""
    id: str
    conversation_id: str
    role: MessageRole
    content: str
    sequence_number: int = 0
    model: Optional[str] = None
    backend: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "conversation_id": self.conversation_id,
            "role": self.role.value,
            "content": self.content,
            "model": self.model,
            "llm": self.backend,
            "created_at": _iso(self.created_at),
            "sequence_number": self.sequence_number,
        }

    def to_backend_dict(self) -> Dict[str, str]:
        """Role and content only; provenance stays behind."""
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            id=str(data["id"]),
            conversation_id=str(data["conversation_id"]),
            role=MessageRole.parse(data.get("role")),
            content=data.get("content") or "",
            sequence_number=int(data.get("sequence_number") or 0),
            model=data.get("model"),
            backend=data.get("llm", data.get("backend")),
            created_at=_parse_dt(data.get("created_at")),
        )


@dataclass
class ConversationDetail:
    """A conversation together with its full, ordered transcript."""
    conversation: Conversation
    messages: List[Message] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conversation": self.conversation.to_dict(),
            "messages": [m.to_dict() for m in self.messages],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationDetail":
        return cls(
            conversation=Conversation.from_dict(data["conversation"]),
            messages=[Message.from_dict(m) for m in data.get("messages", [])],
        )
