"""Client-side conversation session: optimistic view state over the store.

A ``ConversationSession`` drives one user's view of one active conversation.
``submit`` sequences "save user message -> complete -> save assistant
message", showing each message before the store confirms it and rolling it
back by its client correlation id when a step fails. The first message of a
conversation also kicks off title generation as a detached background task.

Nothing here is atomic across store calls: a failure after the user message
is saved leaves that message saved, and the view reflects exactly that.
"""

import asyncio
import dataclasses
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

from relaychat.core.log_sanitizer import sanitize_for_logging
from relaychat.domain.conversations.models import (
    DEFAULT_CONVERSATION_TITLE,
    Backend,
    Conversation,
    ConversationDetail,
    Message,
    MessageRole,
)
from relaychat.domain.errors import DomainError, InvalidArgumentError, NotFoundError, SessionBusyError
from relaychat.interfaces.llm import ChatCompletionProtocol, TitleServiceProtocol
from relaychat.interfaces.store import ConversationStoreProtocol

from .background import BackgroundTaskRunner

logger = logging.getLogger(__name__)

STEP_CREATE_CONVERSATION = "create_conversation"
STEP_SAVE_USER_MESSAGE = "save_user_message"
STEP_COMPLETE = "complete"
STEP_SAVE_ASSISTANT_MESSAGE = "save_assistant_message"


class SessionState(Enum):
    IDLE = "idle"
    CONVERSATION_ACTIVE = "conversation_active"
    SENDING = "sending"


def _new_client_id() -> str:
    return uuid.uuid4().hex


@dataclass
class ViewMessage:
    """A message as shown to the user.

    ``id`` stays ``None`` until the store confirms the message. ``client_id``
    exists for every instance and is the only key rollback uses.
    """
    role: str
    content: str
    id: Optional[str] = None
    model: Optional[str] = None
    backend: Optional[str] = None
    created_at: Optional[datetime] = None
    client_id: str = field(default_factory=_new_client_id)

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    @classmethod
    def from_message(cls, message: Message) -> "ViewMessage":
        return cls(
            role=message.role.value,
            content=message.content,
            id=message.id,
            model=message.model,
            backend=message.backend,
            created_at=message.created_at,
        )

    def to_backend_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class SubmitOutcome:
    """Result of one ``submit``. ``failed_step`` names the step that failed."""
    succeeded: bool
    error: Optional[DomainError] = None
    failed_step: Optional[str] = None
    reply: Optional[str] = None


class ConversationSession:
    """Orchestrates one client's conversation view against the store."""

    def __init__(
        self,
        store: ConversationStoreProtocol,
        chat: ChatCompletionProtocol,
        titles: TitleServiceProtocol,
        *,
        model: Optional[str] = None,
        backend: str = Backend.LOCAL.value,
        default_title: str = DEFAULT_CONVERSATION_TITLE,
        background: Optional[BackgroundTaskRunner] = None,
    ):
        self.store = store
        self.chat = chat
        self.titles = titles
        self.model = model
        self.backend = Backend.parse(backend).value
        self.default_title = default_title
        self.background = background or BackgroundTaskRunner()

        self.state = SessionState.IDLE
        self.conversation: Optional[Conversation] = None
        self.messages: List[ViewMessage] = []
        self.conversations: List[Conversation] = []
        self.last_error: Optional[DomainError] = None

    # ------------------------------------------------------------------
    # View helpers
    # ------------------------------------------------------------------

    @property
    def pending_background_tasks(self) -> Set[asyncio.Task]:
        return self.background.pending

    def _rollback(self, client_ids: Iterable[str]) -> None:
        doomed = set(client_ids)
        self.messages = [m for m in self.messages if m.client_id not in doomed]

    def _adopt(self, detail: ConversationDetail) -> None:
        """Replace the view with the store's transcript.

        The local title is kept: every title change this session knows about
        already went through ``rename`` or the title task.
        """
        conversation = detail.conversation
        if self.conversation is not None and self.conversation.id == conversation.id:
            conversation = dataclasses.replace(conversation, title=self.conversation.title)
        self.conversation = conversation
        self.messages = [ViewMessage.from_message(m) for m in detail.messages]
        self._touch_sidebar(conversation)

    def _touch_sidebar(self, conversation: Conversation) -> None:
        """Move a conversation to the top of the sidebar list."""
        self.conversations = [conversation] + [c for c in self.conversations if c.id != conversation.id]

    def _set_title_locally(self, conversation_id: str, title: str) -> None:
        if self.conversation is not None and self.conversation.id == conversation_id:
            self.conversation = dataclasses.replace(self.conversation, title=title)
        self.conversations = [
            dataclasses.replace(c, title=title) if c.id == conversation_id else c
            for c in self.conversations
        ]

    def _go_idle(self) -> None:
        self.state = SessionState.IDLE
        self.conversation = None
        self.messages = []

    def _ensure_not_sending(self, action: str) -> None:
        """The active conversation cannot change while a submit is in flight."""
        if self.state is SessionState.SENDING:
            raise SessionBusyError(f"Cannot {action} while a message is being sent", code="session_busy")

    # ------------------------------------------------------------------
    # Sidebar and selection
    # ------------------------------------------------------------------

    async def refresh_conversations(self) -> List[Conversation]:
        self.conversations = await self.store.list_conversations()
        return self.conversations

    async def new_conversation(self, title: Optional[str] = None) -> Conversation:
        """Create an empty conversation and make it active."""
        self._ensure_not_sending("start a new conversation")
        conversation = await self.store.create_conversation(
            title or self.default_title, self.model, self.backend
        )
        self.conversation = conversation
        self.messages = []
        self.state = SessionState.CONVERSATION_ACTIVE
        self._touch_sidebar(conversation)
        return conversation

    async def select_conversation(self, conversation_id: str) -> Optional[ConversationDetail]:
        """Load a conversation. An absent one sends the session to Idle."""
        self._ensure_not_sending("switch conversations")
        try:
            detail = await self.store.get_conversation(conversation_id)
        except NotFoundError as exc:
            logger.info("Conversation %s vanished before selection", sanitize_for_logging(conversation_id))
            self.last_error = exc
            self.conversations = [c for c in self.conversations if c.id != conversation_id]
            self._go_idle()
            return None

        self.conversation = detail.conversation
        self.messages = [ViewMessage.from_message(m) for m in detail.messages]
        self.state = SessionState.CONVERSATION_ACTIVE
        self.last_error = None
        return detail

    async def rename(self, title: str) -> Conversation:
        """Rename the active conversation. Last write wins."""
        if self.conversation is None:
            raise InvalidArgumentError("No active conversation to rename", code="no_conversation")
        if not isinstance(title, str) or not title.strip():
            raise InvalidArgumentError("Title must be a non-empty string", code="invalid_title")
        conversation_id = self.conversation.id
        updated = await self.store.rename_conversation(conversation_id, title)
        self._set_title_locally(conversation_id, updated.title)
        return updated

    async def delete_conversation(self, conversation_id: str) -> None:
        if self.conversation is not None and self.conversation.id == conversation_id:
            self._ensure_not_sending("delete the active conversation")
        await self.store.delete_conversation(conversation_id)
        self.conversations = [c for c in self.conversations if c.id != conversation_id]
        if self.conversation is not None and self.conversation.id == conversation_id:
            self._go_idle()

    async def search(self, query: str) -> List[Conversation]:
        return await self.store.search_conversations(query)

    def set_model(self, model: Optional[str], backend: Optional[str] = None) -> None:
        if backend is not None:
            self.backend = Backend.parse(backend).value
        self.model = model

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def _fail(self, exc: DomainError, step: str, pending: Iterable[str] = ()) -> SubmitOutcome:
        self._rollback(pending)
        self.last_error = exc
        logger.warning("Submit failed at %s: %s", step, exc.message)
        return SubmitOutcome(succeeded=False, error=exc, failed_step=step)

    async def _generate_title(self, conversation_id: str, history: List[Dict[str, str]]) -> None:
        try:
            title = await self.titles.generate_title(conversation_id, history)
        except DomainError as exc:
            # Placeholder title stays; the user never sees this failure
            logger.warning(
                "Title generation for %s failed: %s",
                sanitize_for_logging(conversation_id),
                exc.message,
            )
            return
        self._set_title_locally(conversation_id, title)
        logger.info("Conversation %s titled %s", conversation_id, sanitize_for_logging(title))

    async def submit(self, text: str) -> SubmitOutcome:
        """Send a user message and record the assistant's reply.

        Raises:
            SessionBusyError: a submit is already in flight
            InvalidArgumentError: blank text, or no model selected for ``local``
        """
        if self.state is SessionState.SENDING:
            raise SessionBusyError("A message is already being sent", code="session_busy")
        if not isinstance(text, str) or not text.strip():
            raise InvalidArgumentError("Message text is empty", code="empty_message")
        if self.backend == Backend.LOCAL.value and not (self.model and self.model.strip()):
            raise InvalidArgumentError("Please select a model first", code="missing_model")

        model, backend = self.model, self.backend
        self.last_error = None
        self.state = SessionState.SENDING
        try:
            return await self._submit(text, model, backend)
        finally:
            self.state = SessionState.CONVERSATION_ACTIVE if self.conversation else SessionState.IDLE

    async def _submit(self, text: str, model: Optional[str], backend: str) -> SubmitOutcome:
        if self.conversation is None:
            try:
                conversation = await self.store.create_conversation(self.default_title, model, backend)
            except DomainError as exc:
                return self._fail(exc, STEP_CREATE_CONVERSATION)
            self.conversation = conversation
            self.messages = []
            self._touch_sidebar(conversation)

        conversation_id = self.conversation.id
        is_first = not any(m.is_persisted for m in self.messages)

        user_message = ViewMessage(role=MessageRole.USER.value, content=text, model=model, backend=backend)
        self.messages.append(user_message)
        try:
            detail = await self.store.append_message(
                conversation_id, MessageRole.USER.value, text, model=model, backend=backend
            )
        except DomainError as exc:
            return self._fail(exc, STEP_SAVE_USER_MESSAGE, [user_message.client_id])
        self._adopt(detail)

        history = [m.to_backend_dict() for m in self.messages]
        if is_first:
            self.background.spawn(
                self._generate_title(conversation_id, history),
                name=f"title-{conversation_id}",
            )

        try:
            reply = await self.chat.complete(history, model, backend)
        except DomainError as exc:
            return self._fail(exc, STEP_COMPLETE, [m.client_id for m in self.messages if not m.is_persisted])

        assistant_message = ViewMessage(
            role=MessageRole.ASSISTANT.value, content=reply, model=model, backend=backend
        )
        self.messages.append(assistant_message)
        try:
            detail = await self.store.append_message(
                conversation_id, MessageRole.ASSISTANT.value, reply, model=model, backend=backend
            )
        except DomainError as exc:
            return self._fail(exc, STEP_SAVE_ASSISTANT_MESSAGE, [assistant_message.client_id])
        self._adopt(detail)

        return SubmitOutcome(succeeded=True, reply=reply)
