"""Repository for conversation persistence operations.

Sole authority for conversation/message identity, transcript ordering and
cascading deletes. Referential integrity is enforced here rather than via
database FK constraints for DuckDB compatibility.

Every public method is atomic with respect to other calls on the same
repository: writes are serialized by a process-wide lock and each one runs in
its own transaction. Nothing is atomic across calls.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional

from sqlalchemy import delete, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from relaychat.core.log_sanitizer import sanitize_for_logging
from relaychat.core.metrics_logger import log_metric
from relaychat.domain.conversations.models import (
    DEFAULT_CONVERSATION_TITLE,
    Backend,
    Conversation,
    ConversationDetail,
    Message,
    MessageRole,
)
from relaychat.domain.errors import InvalidArgumentError, NotFoundError, PersistenceError

from .models import ConversationRecord, MessageRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGE_LENGTH = 200_000
_LIKE_ESCAPE = "/"


def _escape_like(text: str) -> str:
    """Make LIKE wildcards in user input match literally."""
    return (
        text.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


class MonotonicClock:
    """UTC clock that never returns the same instant twice.

    Store timestamps double as ordering keys, so two writes landing in the
    same microsecond still get distinct, increasing values.
    """

    def __init__(self) -> None:
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            current = datetime.now(timezone.utc)
            if self._last is not None and current <= self._last:
                current = self._last + timedelta(microseconds=1)
            self._last = current
            return current


class ConversationRepository:
    """Handles conversation CRUD, message appends and search."""

    def __init__(
        self,
        session_factory: sessionmaker,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
        clock: Optional[MonotonicClock] = None,
    ):
        self._session_factory = session_factory
        self._max_message_length = max_message_length
        self._clock = clock or MonotonicClock()
        self._write_lock = threading.RLock()

    @contextmanager
    def _session_scope(self, action: str) -> Iterator[Session]:
        """Yield a session; database failures become PersistenceError."""
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Conversation store failed to %s: %s", action, exc, exc_info=True)
            raise PersistenceError(f"Failed to {action}") from exc
        finally:
            session.close()

    @staticmethod
    def _find_conversation(
        session: Session,
        conversation_id: str,
        owner: Optional[str],
    ) -> Optional[ConversationRecord]:
        query = session.query(ConversationRecord).filter(
            ConversationRecord.id == str(conversation_id),
        )
        if owner is not None:
            query = query.filter(ConversationRecord.owner == owner)
        return query.first()

    def create_conversation(
        self,
        owner: str,
        title: Optional[str] = None,
        model: Optional[str] = None,
        backend: Optional[str] = None,
    ) -> Conversation:
        """Create an empty conversation and return it with its new id."""
        backend_value = Backend.parse(backend).value if backend is not None else None
        with self._write_lock, self._session_scope("create conversation") as session:
            now = self._clock.now()
            record = ConversationRecord(
                id=str(uuid.uuid4()),
                owner=owner,
                title=title if title is not None else DEFAULT_CONVERSATION_TITLE,
                model=model,
                backend=backend_value,
                created_at=now,
                updated_at=now,
                message_count=0,
            )
            session.add(record)
            session.commit()
            logger.info(
                "Created conversation %s for %s (model=%s, backend=%s)",
                record.id,
                sanitize_for_logging(owner),
                sanitize_for_logging(model),
                backend_value,
            )
            return _to_conversation(record)

    def append_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        model: Optional[str] = None,
        backend: Optional[str] = None,
        owner: Optional[str] = None,
    ) -> Message:
        """Append a message at the end of a conversation's transcript.

        Raises:
            InvalidArgumentError: role outside the closed set, or content too large
            NotFoundError: the conversation does not exist (for this owner)
        """
        message_role = MessageRole.parse(role)
        if not isinstance(content, str):
            raise InvalidArgumentError("Message content must be a string", code="invalid_content")
        if len(content) > self._max_message_length:
            raise InvalidArgumentError(
                f"Message content exceeds {self._max_message_length} characters",
                code="content_too_large",
            )
        backend_value = Backend.parse(backend).value if backend is not None else None

        with self._write_lock, self._session_scope("append message") as session:
            conv = self._find_conversation(session, conversation_id, owner)
            if conv is None:
                raise NotFoundError(f"Conversation {conversation_id} not found", code="conversation_not_found")

            now = self._clock.now()
            record = MessageRecord(
                id=str(uuid.uuid4()),
                conversation_id=conv.id,
                role=message_role.value,
                content=content,
                model=model,
                backend=backend_value,
                created_at=now,
                sequence_number=conv.message_count,
            )
            session.add(record)
            conv.message_count = conv.message_count + 1
            conv.updated_at = now
            session.commit()

            log_metric(
                "message_appended",
                conv.owner,
                role=message_role.value,
                content_length=len(content),
                sequence_number=record.sequence_number,
            )
            return _to_message(record)

    def get_conversation(self, conversation_id: str, owner: Optional[str] = None) -> ConversationDetail:
        """Get a conversation with its full transcript in append order."""
        with self._session_scope("load conversation") as session:
            conv = self._find_conversation(session, conversation_id, owner)
            if conv is None:
                raise NotFoundError(f"Conversation {conversation_id} not found", code="conversation_not_found")

            msgs = session.query(MessageRecord).filter(
                MessageRecord.conversation_id == conv.id,
            ).order_by(MessageRecord.sequence_number, MessageRecord.id).all()

            return ConversationDetail(
                conversation=_to_conversation(conv),
                messages=[_to_message(m) for m in msgs],
            )

    def list_conversations(
        self,
        owner: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Conversation]:
        """List an owner's conversations, most recently active first."""
        with self._session_scope("list conversations") as session:
            query = session.query(ConversationRecord).filter(
                ConversationRecord.owner == owner
            ).order_by(desc(ConversationRecord.updated_at), desc(ConversationRecord.id))
            if offset:
                query = query.offset(offset)
            if limit is not None:
                query = query.limit(limit)
            return [_to_conversation(c) for c in query.all()]

    def rename_conversation(
        self,
        conversation_id: str,
        title: str,
        owner: Optional[str] = None,
    ) -> Conversation:
        """Overwrite the title. Last write wins; there is no version check."""
        if not isinstance(title, str):
            raise InvalidArgumentError("Title must be a string", code="invalid_title")
        with self._write_lock, self._session_scope("rename conversation") as session:
            conv = self._find_conversation(session, conversation_id, owner)
            if conv is None:
                raise NotFoundError(f"Conversation {conversation_id} not found", code="conversation_not_found")
            conv.title = title
            conv.updated_at = self._clock.now()
            session.commit()
            logger.info("Renamed conversation %s to %s", conv.id, sanitize_for_logging(title))
            return _to_conversation(conv)

    def delete_conversation(self, conversation_id: str, owner: Optional[str] = None) -> bool:
        """Delete a conversation and all of its messages.

        Idempotent: returns False when there was nothing to delete.
        """
        with self._write_lock, self._session_scope("delete conversation") as session:
            conv = self._find_conversation(session, conversation_id, owner)
            if conv is None:
                logger.debug("Delete of absent conversation %s ignored", sanitize_for_logging(conversation_id))
                return False
            self._delete_conv_cascade(session, conv.id)
            session.commit()
            logger.info("Deleted conversation %s", conv.id)
            return True

    def search_conversations(
        self,
        owner: str,
        query: str,
        limit: Optional[int] = None,
    ) -> List[Conversation]:
        """Search an owner's conversations by title or message content.

        Case-insensitive substring match. Each conversation appears once,
        most recently active first.
        """
        search_pattern = f"%{_escape_like(query)}%"
        with self._session_scope("search conversations") as session:
            # Find conversation IDs with matching messages
            msg_conv_ids = [
                r[0] for r in session.query(MessageRecord.conversation_id).join(
                    ConversationRecord,
                    MessageRecord.conversation_id == ConversationRecord.id,
                ).filter(
                    ConversationRecord.owner == owner,
                    MessageRecord.content.ilike(search_pattern, escape=_LIKE_ESCAPE),
                ).distinct().all()
            ]

            # Find conversation IDs with matching titles
            title_conv_ids = [
                r[0] for r in session.query(ConversationRecord.id).filter(
                    ConversationRecord.owner == owner,
                    ConversationRecord.title.ilike(search_pattern, escape=_LIKE_ESCAPE),
                ).all()
            ]

            all_ids = list(set(msg_conv_ids + title_conv_ids))
            if not all_ids:
                return []

            results = session.query(ConversationRecord).filter(
                ConversationRecord.id.in_(all_ids),
                ConversationRecord.owner == owner,
            ).order_by(desc(ConversationRecord.updated_at), desc(ConversationRecord.id))
            if limit is not None:
                results = results.limit(limit)

            logger.debug(
                "Search %s for %s matched %d conversations",
                sanitize_for_logging(query),
                sanitize_for_logging(owner),
                len(all_ids),
            )
            return [_to_conversation(c) for c in results.all()]

    def _delete_conv_cascade(self, session: Session, conversation_id: str) -> None:
        """Delete a conversation and its messages (manual cascade)."""
        session.execute(
            delete(MessageRecord).where(
                MessageRecord.conversation_id == conversation_id
            )
        )
        session.execute(
            delete(ConversationRecord).where(
                ConversationRecord.id == conversation_id
            )
        )


def _to_conversation(record: ConversationRecord) -> Conversation:
    return Conversation(
        id=record.id,
        owner=record.owner,
        title=record.title,
        model=record.model,
        backend=record.backend,
        created_at=record.created_at,
        updated_at=record.updated_at,
        message_count=record.message_count or 0,
    )


def _to_message(record: MessageRecord) -> Message:
    return Message(
        id=record.id,
        conversation_id=record.conversation_id,
        role=MessageRole(record.role),
        content=record.content or "",
        sequence_number=record.sequence_number,
        model=record.model,
        backend=record.backend,
        created_at=record.created_at,
    )
