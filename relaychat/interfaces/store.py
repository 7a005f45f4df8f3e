"""Conversation store protocol as seen by a client session."""

from typing import List, Optional, Protocol, runtime_checkable

from relaychat.domain.conversations.models import Conversation, ConversationDetail


@runtime_checkable
class ConversationStoreProtocol(Protocol):
    """Async access to the conversation store.

    Absence is signalled with ``NotFoundError``; database failures with
    ``PersistenceError``.
    """

    async def list_conversations(self) -> List[Conversation]:
        ...

    async def create_conversation(
        self,
        title: Optional[str] = None,
        model: Optional[str] = None,
        backend: Optional[str] = None,
    ) -> Conversation:
        ...

    async def get_conversation(self, conversation_id: str) -> ConversationDetail:
        ...

    async def append_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        model: Optional[str] = None,
        backend: Optional[str] = None,
    ) -> ConversationDetail:
        """Append one message; returns the authoritative transcript."""
        ...

    async def rename_conversation(self, conversation_id: str, title: str) -> Conversation:
        ...

    async def delete_conversation(self, conversation_id: str) -> None:
        ...

    async def search_conversations(self, query: str) -> List[Conversation]:
        ...
