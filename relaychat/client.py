"""Async HTTP client for the RelayChat backend.

``RelayChatClient`` speaks the ``/api`` surface and implements the store,
completion and title protocols that ``ConversationSession`` depends on, so a
session can run against a remote backend (or, in tests, against the ASGI app
through ``httpx.ASGITransport``).

HTTP failures are mapped back onto domain errors:
404 -> NotFoundError, 400/422 -> InvalidArgumentError, anything else ->
BackendError for chat/title calls and PersistenceError for store calls.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from relaychat.domain.conversations.models import Backend, Conversation, ConversationDetail
from relaychat.domain.errors import BackendError, InvalidArgumentError, NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:8000"


class RelayChatClient:
    """Client for a running RelayChat backend."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        owner: Optional[str] = None,
        owner_header: str = "X-User-Email",
        timeout: float = 180.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Backend root URL (without the ``/api`` prefix).
            owner: Identity sent in ``owner_header``; the server default applies when omitted.
            owner_header: Header the backend reads the owner from.
            timeout: Request timeout in seconds; completions can be slow.
            transport: Optional httpx transport (e.g. ``httpx.ASGITransport``).
        """
        headers = {"Content-Type": "application/json"}
        if owner:
            headers[owner_header] = owner
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "RelayChatClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(body, dict) and body.get("detail") is not None:
            return str(body["detail"])
        return str(body)

    async def _request(self, method: str, path: str, *, backend_call: bool = False, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.error("Request error on %s %s: %s", method, path, str(exc))
            if backend_call:
                raise BackendError(f"Could not reach RelayChat backend: {exc}") from exc
            raise PersistenceError(f"Could not reach RelayChat backend: {exc}") from exc

        if response.is_success:
            return response.json()

        detail = self._detail(response)
        status = response.status_code
        logger.debug("%s %s failed with status %d: %s", method, path, status, detail)
        if status == 404:
            raise NotFoundError(detail)
        if status in (400, 422):
            raise InvalidArgumentError(detail)
        if backend_call:
            raise BackendError(detail, status_code=status)
        raise PersistenceError(detail)

    # ------------------------------------------------------------------
    # Conversation store
    # ------------------------------------------------------------------

    async def list_conversations(self) -> List[Conversation]:
        data = await self._request("GET", "/api/conversations")
        return [Conversation.from_dict(c) for c in data]

    async def create_conversation(
        self,
        title: Optional[str] = None,
        model: Optional[str] = None,
        backend: Optional[str] = None,
    ) -> Conversation:
        payload: Dict[str, Any] = {"title": title, "model": model}
        if backend is not None:
            payload["llm"] = backend
        data = await self._request("POST", "/api/conversations", json=payload)
        return Conversation.from_dict(data)

    async def get_conversation(self, conversation_id: str) -> ConversationDetail:
        data = await self._request("GET", f"/api/conversations/{conversation_id}")
        return ConversationDetail.from_dict(data)

    async def append_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        model: Optional[str] = None,
        backend: Optional[str] = None,
    ) -> ConversationDetail:
        payload = {"role": role, "content": content, "model": model, "llm": backend}
        data = await self._request("POST", f"/api/conversations/{conversation_id}/messages", json=payload)
        return ConversationDetail.from_dict(data)

    async def rename_conversation(self, conversation_id: str, title: str) -> Conversation:
        data = await self._request("PATCH", f"/api/conversations/{conversation_id}", json={"title": title})
        return Conversation.from_dict(data)

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._request("DELETE", f"/api/conversations/{conversation_id}")

    async def search_conversations(self, query: str) -> List[Conversation]:
        data = await self._request("GET", "/api/conversations/search", params={"q": query})
        return [Conversation.from_dict(c) for c in data]

    # ------------------------------------------------------------------
    # Completions and titles
    # ------------------------------------------------------------------

    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str],
        backend: str,
    ) -> str:
        if Backend.parse(backend) is Backend.LOCAL:
            data = await self._request(
                "POST", "/api/chat-local", backend_call=True, json={"messages": messages, "model": model}
            )
        else:
            data = await self._request("POST", "/api/chat-routed", backend_call=True, json={"messages": messages})
        return data["content"]

    async def generate_title(
        self,
        conversation_id: str,
        messages: Union[str, Sequence[Dict[str, str]]],
    ) -> str:
        payload: Dict[str, Any] = {"conversationId": conversation_id}
        if isinstance(messages, str):
            payload["messageContent"] = messages
        else:
            payload["messages"] = list(messages)
        data = await self._request("POST", "/api/generate-title", backend_call=True, json=payload)
        return data["title"]

    async def list_local_models(self) -> Dict[str, Any]:
        return await self._request("GET", "/api/local-models", backend_call=True)

    async def check_key(self, key: str) -> bool:
        data = await self._request("GET", "/api/check-key", params={"key": key})
        return bool(data.get("hasKey"))

    async def health(self) -> Dict[str, Any]:
        return await self._request("GET", "/api/health")
