"""Conversation persistence module using SQLAlchemy with DuckDB/PostgreSQL."""

from .conversation_repository import ConversationRepository, MonotonicClock
from .database import ChatHistoryDatabase, create_engine_for_url
from .models import Base, ConversationRecord, MessageRecord

__all__ = [
    "ChatHistoryDatabase",
    "create_engine_for_url",
    "ConversationRepository",
    "MonotonicClock",
    "Base",
    "ConversationRecord",
    "MessageRecord",
]
