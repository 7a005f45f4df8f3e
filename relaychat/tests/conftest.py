"""Shared fixtures: temp DuckDB stores, wired factories and test clients."""

import os

# Keep LiteLLM quiet before anything imports it.
os.environ.setdefault("LITELLM_LOG", "ERROR")
# Use the bundled model cost map instead of fetching it over the network at import.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

import httpx  # noqa: E402
import pytest  # noqa: E402
from starlette.testclient import TestClient  # noqa: E402

from relaychat.infrastructure.app_factory import AppFactory  # noqa: E402
from relaychat.modules.chat_history import ChatHistoryDatabase, ConversationRepository  # noqa: E402
from relaychat.modules.config import AppSettings, ConfigManager  # noqa: E402
from relaychat.server import create_app  # noqa: E402


@pytest.fixture
def db_url(tmp_path):
    """Provide a temporary DuckDB file URL."""
    return f"duckdb:///{tmp_path / 'test_chat_history.db'}"


@pytest.fixture
def database(db_url):
    db = ChatHistoryDatabase(db_url).open()
    yield db
    db.close()


@pytest.fixture
def repo(database):
    """A ConversationRepository backed by a temp DuckDB."""
    return ConversationRepository(database.session_factory)


@pytest.fixture
def settings(db_url):
    return AppSettings(
        chat_history_db_url=db_url,
        routed_api_key="test-routed-key",
        default_owner="default-user",
        feature_metrics_logging_enabled=False,
    )


class LocalServerStub:
    """Scriptable stand-in for the local inference server."""

    def __init__(self):
        self.requests = []
        self.chat_body = '{"message": {"role": "assistant", "content": "Hello from local"}, "done": true}'
        self.chat_status = 200
        self.tags = {"models": [{"name": "llama3:latest"}, {"name": "gemma3:4b"}]}
        self.chat_handler = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/api/chat":
            if self.chat_handler is not None:
                return self.chat_handler(request)
            return httpx.Response(self.chat_status, text=self.chat_body)
        if request.url.path == "/api/tags":
            return httpx.Response(200, json=self.tags)
        return httpx.Response(404, text="not found")


@pytest.fixture
def local_server():
    return LocalServerStub()


@pytest.fixture
def app_factory(settings, local_server):
    factory = AppFactory(
        ConfigManager(settings),
        local_transport=httpx.MockTransport(local_server.handler),
    )
    factory.open()
    yield factory
    factory.close()


@pytest.fixture
def app(app_factory):
    return create_app(app_factory)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
