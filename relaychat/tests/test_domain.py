"""Tests for domain errors and conversation models."""

from datetime import datetime, timezone

import pytest

from relaychat.domain.conversations.models import (
    Backend,
    Conversation,
    ConversationDetail,
    Message,
    MessageRole,
)
from relaychat.domain.errors import (
    BackendDecodeError,
    BackendError,
    DomainError,
    InvalidArgumentError,
    NotFoundError,
    PersistenceError,
    SessionBusyError,
)


class TestDomainErrors:
    def test_message_and_code(self):
        error = DomainError("Something went wrong", code="oops")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.code == "oops"

    def test_hierarchy(self):
        assert issubclass(NotFoundError, DomainError)
        assert issubclass(InvalidArgumentError, DomainError)
        assert issubclass(PersistenceError, DomainError)
        assert issubclass(BackendDecodeError, BackendError)
        assert issubclass(SessionBusyError, InvalidArgumentError)

    def test_backend_error_fields(self):
        error = BackendError("upstream failed", status_code=502, backend="routed")
        assert error.status_code == 502
        assert error.backend == "routed"
        assert error.code is None


class TestEnums:
    def test_role_parse(self):
        assert MessageRole.parse("assistant") is MessageRole.ASSISTANT
        assert MessageRole.parse(MessageRole.SYSTEM) is MessageRole.SYSTEM

    @pytest.mark.parametrize("value", ["tool", "", None, "USER"])
    def test_role_parse_rejects(self, value):
        with pytest.raises(InvalidArgumentError) as exc_info:
            MessageRole.parse(value)
        assert exc_info.value.code == "invalid_role"

    def test_backend_parse(self):
        assert Backend.parse("routed") is Backend.ROUTED
        with pytest.raises(InvalidArgumentError):
            Backend.parse("ollama")


class TestModels:
    def test_conversation_wire_shape(self):
        ts = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        conv = Conversation(id="c1", owner="u", title="t", model="m", backend="local", created_at=ts, updated_at=ts)
        data = conv.to_dict()
        assert data["llm"] == "local"
        assert data["created_at"] == ts.isoformat()
        assert Conversation.from_dict(data) == conv

    def test_message_backend_dict_drops_provenance(self):
        msg = Message(id="m1", conversation_id="c1", role=MessageRole.USER, content="Hi", model="m", backend="local")
        assert msg.to_backend_dict() == {"role": "user", "content": "Hi"}

    def test_detail_from_dict(self):
        data = {
            "conversation": {"id": "c1", "owner": "u", "title": "t", "llm": "routed"},
            "messages": [{"id": "m1", "conversation_id": "c1", "role": "assistant", "content": "x", "sequence_number": 3}],
        }
        detail = ConversationDetail.from_dict(data)
        assert detail.conversation.backend == "routed"
        assert detail.messages[0].role is MessageRole.ASSISTANT
        assert detail.messages[0].sequence_number == 3
