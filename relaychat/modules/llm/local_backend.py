"""HTTP adapter for the local inference server (``/api/chat``, ``/api/tags``)."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from relaychat.domain.errors import BackendDecodeError, BackendError

from .response_decoding import decode_local_chat

logger = logging.getLogger(__name__)

BACKEND_NAME = "local"


class LocalBackend:
    """Client for a local inference server speaking the ``/api/chat`` dialect.

    Transport failures and non-2xx statuses raise ``BackendError``; a body that
    arrives but cannot be decoded raises ``BackendDecodeError``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the local backend client.

        Args:
            base_url: Root URL of the inference server.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

        logger.info("LocalBackend initialized: url=%s, timeout=%s", self.base_url, self.timeout)

    def _client(self, timeout: Optional[float]) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout if timeout is not None else self.timeout,
            transport=self._transport,
        )

    async def chat(
        self,
        messages: List[Dict[str, str]],
        model: str,
        *,
        response_format: Optional[Dict[str, Any]] = None,
        stream: Optional[bool] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Send a chat request and return the decoded content.

        ``stream`` is only sent when given; the server's default then decides
        between a single object and newline-delimited chunks, and both decode.
        """
        payload: Dict[str, Any] = {"model": model, "messages": messages}
        if stream is not None:
            payload["stream"] = stream
        if response_format is not None:
            payload["format"] = response_format

        logger.debug("[LOCAL] chat: model=%s, message_count=%d", model, len(messages))

        async with self._client(timeout) as client:
            try:
                response = await client.post(f"{self.base_url}/api/chat", json=payload)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "[LOCAL] HTTP error from /api/chat: %s (status %d)",
                    exc.response.text[:200],
                    exc.response.status_code,
                )
                raise BackendError(
                    f"Local backend returned status {exc.response.status_code}",
                    status_code=exc.response.status_code,
                    backend=BACKEND_NAME,
                ) from exc
            except httpx.RequestError as exc:
                logger.error("[LOCAL] Request error calling /api/chat: %s", str(exc))
                raise BackendError(
                    f"Local backend unreachable: {exc}",
                    backend=BACKEND_NAME,
                ) from exc

        return decode_local_chat(response.text)

    async def list_models(self) -> Dict[str, Any]:
        """Return the server's native model (tag) listing."""
        async with self._client(None) as client:
            try:
                response = await client.get(f"{self.base_url}/api/tags")
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.error("[LOCAL] HTTP error listing models (status %d)", exc.response.status_code)
                raise BackendError(
                    f"Local backend returned status {exc.response.status_code}",
                    status_code=exc.response.status_code,
                    backend=BACKEND_NAME,
                ) from exc
            except httpx.RequestError as exc:
                logger.error("[LOCAL] Request error listing models: %s", str(exc))
                raise BackendError(f"Local backend unreachable: {exc}", backend=BACKEND_NAME) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise BackendDecodeError("Model listing is not valid JSON", backend=BACKEND_NAME) from exc
        logger.info("[LOCAL] Listed %d models", len(data.get("models", [])) if isinstance(data, dict) else 0)
        return data
