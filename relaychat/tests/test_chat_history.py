"""Tests for the conversation store.

Tests cover: database lifecycle, conversation CRUD, transcript ordering,
cascade delete, idempotent delete, search, owner isolation and error mapping.
Uses a temporary DuckDB file for isolated tests.
"""

import os
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from relaychat.domain.conversations.models import MessageRole
from relaychat.domain.errors import InvalidArgumentError, NotFoundError, PersistenceError
from relaychat.modules.chat_history import ChatHistoryDatabase, ConversationRepository, MonotonicClock

OWNER = "default-user"


class TestDatabaseLifecycle:
    def test_open_creates_file(self, tmp_path):
        path = tmp_path / "store.db"
        db = ChatHistoryDatabase(f"duckdb:///{path}").open()
        try:
            assert db.is_open
            assert os.path.exists(path)
        finally:
            db.close()
        assert not db.is_open

    def test_open_is_idempotent(self, db_url):
        db = ChatHistoryDatabase(db_url)
        db.open()
        engine = db.engine
        db.open()
        assert db.engine is engine
        db.close()

    def test_session_factory_requires_open(self, db_url):
        db = ChatHistoryDatabase(db_url)
        with pytest.raises(RuntimeError):
            _ = db.session_factory

    def test_reopen_keeps_data(self, db_url):
        with ChatHistoryDatabase(db_url) as db:
            repo = ConversationRepository(db.session_factory)
            conv = repo.create_conversation(OWNER, "Persisted", "m1", "local")
        with ChatHistoryDatabase(db_url) as db:
            repo = ConversationRepository(db.session_factory)
            assert repo.get_conversation(conv.id).conversation.title == "Persisted"


class TestCreateAndGet:
    def test_create_assigns_id_and_timestamps(self, repo):
        conv = repo.create_conversation(OWNER, "New Chat", "m1", "local")
        assert conv.id
        assert conv.owner == OWNER
        assert conv.title == "New Chat"
        assert conv.model == "m1"
        assert conv.backend == "local"
        assert conv.created_at is not None
        assert conv.updated_at == conv.created_at
        assert conv.message_count == 0

    def test_create_ids_are_unique(self, repo):
        ids = {repo.create_conversation(OWNER, "t", None, None).id for _ in range(5)}
        assert len(ids) == 5

    def test_create_default_title(self, repo):
        conv = repo.create_conversation(OWNER)
        assert conv.title == "New Chat"

    def test_create_rejects_unknown_backend(self, repo):
        with pytest.raises(InvalidArgumentError):
            repo.create_conversation(OWNER, "t", "m1", "ollama")

    def test_get_unknown_raises_not_found(self, repo):
        with pytest.raises(NotFoundError):
            repo.get_conversation("does-not-exist")

    def test_scenario_two_turns(self, repo):
        conv = repo.create_conversation(OWNER, "New Chat", "m1", "local")
        repo.append_message(conv.id, "user", "Hi")

        detail = repo.get_conversation(conv.id)
        assert [(m.role, m.content) for m in detail.messages] == [(MessageRole.USER, "Hi")]

        repo.append_message(conv.id, "assistant", "Hello!")
        detail = repo.get_conversation(conv.id)
        assert [(m.role.value, m.content) for m in detail.messages] == [
            ("user", "Hi"),
            ("assistant", "Hello!"),
        ]
        assert detail.conversation.message_count == 2


class TestAppend:
    def test_append_returns_message_with_id(self, repo):
        conv = repo.create_conversation(OWNER, "t", "m1", "local")
        msg = repo.append_message(conv.id, "user", "Hi", model="m1", backend="local")
        assert msg.id
        assert msg.conversation_id == conv.id
        assert msg.sequence_number == 0
        assert msg.model == "m1"
        assert msg.backend == "local"

    def test_append_preserves_order(self, repo):
        conv = repo.create_conversation(OWNER, "t", None, None)
        contents = [f"message {i}" for i in range(25)]
        for i, content in enumerate(contents):
            repo.append_message(conv.id, "user" if i % 2 == 0 else "assistant", content)

        detail = repo.get_conversation(conv.id)
        assert [m.content for m in detail.messages] == contents
        assert [m.sequence_number for m in detail.messages] == list(range(25))

    def test_duplicate_content_is_kept(self, repo):
        conv = repo.create_conversation(OWNER, "t", None, None)
        repo.append_message(conv.id, "user", "same")
        repo.append_message(conv.id, "user", "same")
        assert len(repo.get_conversation(conv.id).messages) == 2

    def test_append_refreshes_updated_at(self, repo):
        conv = repo.create_conversation(OWNER, "t", None, None)
        repo.append_message(conv.id, "user", "Hi")
        updated = repo.get_conversation(conv.id).conversation
        assert updated.updated_at > conv.updated_at

    def test_append_to_unknown_conversation(self, repo):
        with pytest.raises(NotFoundError):
            repo.append_message("missing", "user", "Hi")

    def test_append_invalid_role(self, repo):
        conv = repo.create_conversation(OWNER, "t", None, None)
        with pytest.raises(InvalidArgumentError):
            repo.append_message(conv.id, "tool", "Hi")
        assert repo.get_conversation(conv.id).messages == []

    def test_append_too_large(self, database):
        repo = ConversationRepository(database.session_factory, max_message_length=10)
        conv = repo.create_conversation(OWNER, "t", None, None)
        with pytest.raises(InvalidArgumentError):
            repo.append_message(conv.id, "user", "x" * 11)
        repo.append_message(conv.id, "user", "x" * 10)

    def test_markdown_and_unicode_round_trip(self, repo):
        conv = repo.create_conversation(OWNER, "t", None, None)
        content = "# Title\n\n```python\nprint('hi')\n```\né中\U0001F600"
        repo.append_message(conv.id, "assistant", content)
        assert repo.get_conversation(conv.id).messages[0].content == content


class TestList:
    def test_list_most_recent_first(self, repo):
        first = repo.create_conversation(OWNER, "first", None, None)
        second = repo.create_conversation(OWNER, "second", None, None)
        assert [c.id for c in repo.list_conversations(OWNER)] == [second.id, first.id]

        repo.append_message(first.id, "user", "bump")
        assert [c.id for c in repo.list_conversations(OWNER)] == [first.id, second.id]

    def test_list_limit_offset(self, repo):
        created = [repo.create_conversation(OWNER, f"c{i}", None, None) for i in range(4)]
        page = repo.list_conversations(OWNER, limit=2, offset=1)
        assert [c.id for c in page] == [created[2].id, created[1].id]

    def test_list_is_owner_scoped(self, repo):
        repo.create_conversation("alice", "a", None, None)
        repo.create_conversation("bob", "b", None, None)
        assert [c.title for c in repo.list_conversations("alice")] == ["a"]
        assert repo.list_conversations("carol") == []


class TestRename:
    def test_last_write_wins(self, repo):
        conv = repo.create_conversation(OWNER, "New Chat", None, None)
        repo.rename_conversation(conv.id, "A")
        renamed = repo.rename_conversation(conv.id, "B")
        assert renamed.title == "B"
        assert repo.get_conversation(conv.id).conversation.title == "B"

    def test_rename_unknown(self, repo):
        with pytest.raises(NotFoundError):
            repo.rename_conversation("missing", "A")

    def test_rename_other_owner_is_absent(self, repo):
        conv = repo.create_conversation("alice", "a", None, None)
        with pytest.raises(NotFoundError):
            repo.rename_conversation(conv.id, "stolen", owner="bob")
        assert repo.get_conversation(conv.id).conversation.title == "a"


class TestDelete:
    def test_delete_cascades(self, repo):
        conv = repo.create_conversation(OWNER, "findme", None, None)
        repo.append_message(conv.id, "user", "needle in here")
        assert repo.delete_conversation(conv.id) is True

        with pytest.raises(NotFoundError):
            repo.get_conversation(conv.id)
        assert repo.list_conversations(OWNER) == []
        assert repo.search_conversations(OWNER, "needle") == []
        assert repo.search_conversations(OWNER, "findme") == []

    def test_delete_is_idempotent(self, repo):
        assert repo.delete_conversation("never-existed") is False
        assert repo.delete_conversation("never-existed") is False

    def test_delete_twice(self, repo):
        conv = repo.create_conversation(OWNER, "t", None, None)
        assert repo.delete_conversation(conv.id) is True
        assert repo.delete_conversation(conv.id) is False

    def test_delete_leaves_other_conversations(self, repo):
        keep = repo.create_conversation(OWNER, "keep", None, None)
        repo.append_message(keep.id, "user", "stay")
        drop = repo.create_conversation(OWNER, "drop", None, None)
        repo.append_message(drop.id, "user", "go")
        repo.delete_conversation(drop.id)
        assert [m.content for m in repo.get_conversation(keep.id).messages] == ["stay"]

    def test_delete_other_owner_is_noop(self, repo):
        conv = repo.create_conversation("alice", "a", None, None)
        assert repo.delete_conversation(conv.id, owner="bob") is False
        assert repo.get_conversation(conv.id).conversation.id == conv.id


class TestSearch:
    def test_search_title_and_content(self, repo):
        by_title = repo.create_conversation(OWNER, "Photosynthesis notes", None, None)
        by_content = repo.create_conversation(OWNER, "Biology", None, None)
        repo.append_message(by_content.id, "user", "how does PHOTOSYNTHESIS work")
        repo.create_conversation(OWNER, "Unrelated", None, None)

        results = repo.search_conversations(OWNER, "photosynthesis")
        assert [c.id for c in results] == [by_content.id, by_title.id]

    def test_search_returns_distinct(self, repo):
        conv = repo.create_conversation(OWNER, "cats", None, None)
        repo.append_message(conv.id, "user", "cats are great")
        repo.append_message(conv.id, "assistant", "yes, cats")
        assert [c.id for c in repo.search_conversations(OWNER, "cats")] == [conv.id]

    def test_search_is_owner_scoped(self, repo):
        conv = repo.create_conversation("alice", "secret plans", None, None)
        repo.append_message(conv.id, "user", "secret")
        assert repo.search_conversations("bob", "secret") == []

    def test_search_no_match(self, repo):
        repo.create_conversation(OWNER, "t", None, None)
        assert repo.search_conversations(OWNER, "zzz") == []

    def test_search_treats_wildcards_literally(self, repo):
        repo.create_conversation(OWNER, "alpha", None, None)
        beta = repo.create_conversation(OWNER, "beta", None, None)
        repo.append_message(beta.id, "user", "50% off snake_case")
        assert [c.id for c in repo.search_conversations(OWNER, "_")] == [beta.id]
        assert [c.id for c in repo.search_conversations(OWNER, "%")] == [beta.id]
        assert [c.id for c in repo.search_conversations(OWNER, "0% o")] == [beta.id]
        assert [c.id for c in repo.search_conversations(OWNER, "e_c")] == [beta.id]
        assert repo.search_conversations(OWNER, "e%c") == []

    def test_search_with_escape_character(self, repo):
        conv = repo.create_conversation(OWNER, "paths", None, None)
        repo.append_message(conv.id, "user", "see docs/api")
        repo.create_conversation(OWNER, "other", None, None)
        assert [c.id for c in repo.search_conversations(OWNER, "s/a")] == [conv.id]


class TestErrors:
    def test_database_errors_become_persistence_errors(self):
        session = MagicMock()
        session.query.side_effect = OperationalError("SELECT 1", {}, Exception("disk gone"))
        repo = ConversationRepository(MagicMock(return_value=session))

        with pytest.raises(PersistenceError):
            repo.list_conversations(OWNER)
        session.rollback.assert_called_once()
        session.close.assert_called_once()


class TestMonotonicClock:
    def test_strictly_increasing(self):
        clock = MonotonicClock()
        stamps = [clock.now() for _ in range(1000)]
        assert all(a < b for a, b in zip(stamps, stamps[1:]))
        assert stamps[0].tzinfo is not None
