"""Backend adapters and the Chat Proxy."""

from .chat_proxy import ChatProxy, strip_messages
from .local_backend import LocalBackend
from .response_decoding import decode_local_chat, decode_routed_completion
from .routed_backend import RoutedBackend

__all__ = [
    "ChatProxy",
    "strip_messages",
    "LocalBackend",
    "RoutedBackend",
    "decode_local_chat",
    "decode_routed_completion",
]
