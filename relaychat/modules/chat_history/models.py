"""SQLAlchemy models for conversation persistence.

Uses String(36) UUIDs for DuckDB compatibility. No database-level foreign
key constraints since DuckDB does not support CASCADE; the repository deletes
a conversation's messages in the same transaction as the conversation.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _uuid_default():
    return str(uuid.uuid4())


def _now_utc():
    return datetime.now(timezone.utc)


class ConversationRecord(Base):
    """A conversation owned by one user."""

    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=_uuid_default)
    owner = Column(String(255), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    model = Column(String(255), nullable=True)
    backend = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)
    message_count = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index("ix_conversations_owner_updated", "owner", "updated_at"),
    )


class MessageRecord(Base):
    """A single message within a conversation."""

    __tablename__ = "conversation_messages"

    id = Column(String(36), primary_key=True, default=_uuid_default)
    conversation_id = Column(String(36), nullable=False, index=True)
    role = Column(String(20), nullable=False)
    content = Column(Text, nullable=False)
    model = Column(String(255), nullable=True)
    backend = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)
    sequence_number = Column(Integer, nullable=False, default=0)
