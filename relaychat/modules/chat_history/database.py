"""Database engine lifecycle for conversation persistence.

Supports DuckDB (local/dev), SQLite and PostgreSQL (production) via SQLAlchemy.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .models import Base

logger = logging.getLogger(__name__)


def _resolve_db_url(db_url: str) -> str:
    """Resolve file-backed database URLs, creating parent directories."""
    for scheme in ("duckdb:///", "sqlite:///"):
        if not db_url.startswith(scheme):
            continue
        db_path = db_url[len(scheme):]
        if not db_path or db_path == ":memory:":
            return db_url
        path = Path(db_path)
        if not os.path.isabs(db_path):
            # Relative paths are anchored at the project root
            project_root = Path(__file__).parent.parent.parent.parent
            path = project_root / db_path
            logger.info("Database path resolved to: %s", path)
        path.parent.mkdir(parents=True, exist_ok=True)
        return f"{scheme}{path}"
    return db_url


def _redact(db_url: str) -> str:
    return db_url.split("@")[-1] if "@" in db_url else db_url


def create_engine_for_url(db_url: str) -> Engine:
    """Create a SQLAlchemy engine suited to the database behind ``db_url``."""
    db_url = _resolve_db_url(db_url)

    if db_url.startswith("postgresql"):
        engine = create_engine(
            db_url,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            echo=False,
        )
    else:
        engine = create_engine(db_url, echo=False)

    logger.info("Conversation database engine created: %s", _redact(db_url))
    return engine


class ChatHistoryDatabase:
    """Owns the engine and session factory for the conversation store.

    Created once at process start, opened before serving requests and
    closed at shutdown.
    """

    def __init__(self, db_url: str):
        self.db_url = db_url
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("ChatHistoryDatabase is not open")
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            raise RuntimeError("ChatHistoryDatabase is not open")
        return self._session_factory

    def open(self) -> "ChatHistoryDatabase":
        """Create the engine and make sure the tables exist.

        For production, run the Alembic migrations instead of relying on
        create_all.
        """
        if self._engine is not None:
            return self
        self._engine = create_engine_for_url(self.db_url)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        logger.info("Conversation database tables created/verified")
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Conversation database closed: %s", _redact(self.db_url))
        self._engine = None
        self._session_factory = None

    def __enter__(self) -> "ChatHistoryDatabase":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
