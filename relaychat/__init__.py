"""
RelayChat - chat front-end that relays conversations to a local or routed LLM backend.

This package provides the HTTP backend, an async client for it, and CLI tools.

Example usage:
    from relaychat import RelayChatClient

    async with RelayChatClient("http://127.0.0.1:8000") as client:
        conversation = await client.create_conversation("New Chat", "llama3", "local")

CLI tools (after pip install):
    relaychat-chat --model llama3
    relaychat-server --port 8000
"""

from relaychat.version import VERSION

__version__ = VERSION
__all__ = [
    "RelayChatClient",
    "ConversationSession",
    "VERSION",
    "__version__",
]


def __getattr__(name: str):
    """Lazy import to avoid loading heavy dependencies at module import time."""
    if name == "RelayChatClient":
        from relaychat.client import RelayChatClient
        globals()["RelayChatClient"] = RelayChatClient
        return RelayChatClient
    if name == "ConversationSession":
        from relaychat.application.session.controller import ConversationSession
        globals()["ConversationSession"] = ConversationSession
        return ConversationSession
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
