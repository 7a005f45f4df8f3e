"""Client-side conversation session controller."""

from .background import BackgroundTaskRunner
from .controller import ConversationSession, SessionState, SubmitOutcome, ViewMessage

__all__ = [
    "BackgroundTaskRunner",
    "ConversationSession",
    "SessionState",
    "SubmitOutcome",
    "ViewMessage",
]
