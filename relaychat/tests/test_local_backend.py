"""Unit tests for LocalBackend using httpx.MockTransport."""

import json

import httpx
import pytest

from relaychat.domain.errors import BackendDecodeError, BackendError
from relaychat.modules.llm.local_backend import LocalBackend


def _backend(handler, **kwargs):
    return LocalBackend(
        base_url="http://ollama.test:11434/",
        timeout=5.0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestLocalBackendInit:
    def test_strips_trailing_slash(self):
        backend = LocalBackend(base_url="http://localhost:11434/")
        assert backend.base_url == "http://localhost:11434"
        assert backend.timeout == 120.0


class TestChat:
    @pytest.mark.asyncio
    async def test_posts_native_shape(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"message": {"role": "assistant", "content": "Hi!"}, "done": True})

        backend = _backend(handler)
        content = await backend.chat([{"role": "user", "content": "Hello"}], "llama3")

        assert content == "Hi!"
        assert seen["url"] == "http://ollama.test:11434/api/chat"
        assert seen["body"] == {"model": "llama3", "messages": [{"role": "user", "content": "Hello"}]}

    @pytest.mark.asyncio
    async def test_sends_format_and_stream_when_given(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"message": {"content": "{}"}})

        backend = _backend(handler)
        schema = {"type": "object"}
        await backend.chat([], "gemma3:4b", response_format=schema, stream=False)
        assert seen["body"]["stream"] is False
        assert seen["body"]["format"] == schema

    @pytest.mark.asyncio
    async def test_streamed_reply(self):
        lines = [
            {"message": {"role": "assistant", "content": "Hel"}, "done": False},
            {"message": {"role": "assistant", "content": "lo"}, "done": True},
        ]
        body = "\n".join(json.dumps(line) for line in lines)
        backend = _backend(lambda request: httpx.Response(200, text=body))
        assert await backend.chat([{"role": "user", "content": "x"}], "llama3") == "Hello"

    @pytest.mark.asyncio
    async def test_non_2xx_raises_backend_error(self):
        backend = _backend(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(BackendError) as exc_info:
            await backend.chat([], "llama3")
        assert exc_info.value.status_code == 500
        assert exc_info.value.backend == "local"
        assert not isinstance(exc_info.value, BackendDecodeError)

    @pytest.mark.asyncio
    async def test_transport_failure_raises_backend_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        backend = _backend(handler)
        with pytest.raises(BackendError) as exc_info:
            await backend.chat([], "llama3")
        assert exc_info.value.status_code is None
        assert not isinstance(exc_info.value, BackendDecodeError)

    @pytest.mark.asyncio
    async def test_junk_body_raises_decode_error(self):
        backend = _backend(lambda request: httpx.Response(200, text="<html>nope</html>"))
        with pytest.raises(BackendDecodeError):
            await backend.chat([], "llama3")


class TestListModels:
    @pytest.mark.asyncio
    async def test_returns_native_listing(self):
        tags = {"models": [{"name": "llama3:latest", "size": 1}]}

        def handler(request):
            assert request.url.path == "/api/tags"
            return httpx.Response(200, json=tags)

        assert await _backend(handler).list_models() == tags

    @pytest.mark.asyncio
    async def test_error_status(self):
        backend = _backend(lambda request: httpx.Response(503, text="starting"))
        with pytest.raises(BackendError):
            await backend.list_models()

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        backend = _backend(lambda request: httpx.Response(200, text="not json"))
        with pytest.raises(BackendDecodeError):
            await backend.list_models()
