"""Application factory for dependency injection and wiring."""

import logging
from typing import Optional

import httpx

from relaychat.modules.chat_history import ChatHistoryDatabase, ConversationRepository
from relaychat.modules.config import ConfigManager
from relaychat.modules.llm import ChatProxy, LocalBackend, RoutedBackend
from relaychat.modules.titles import TitleGenerator

logger = logging.getLogger(__name__)


class AppFactory:
    """Wires the store, backends, proxy and title generator (simple DI).

    Backend clients are ready after construction. The conversation store has
    an explicit lifecycle: ``open()`` at process start, ``close()`` at
    shutdown. Nothing here is a module-level singleton.
    """

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        local_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        # Configuration
        self.config_manager = config_manager or ConfigManager()
        settings = self.config_manager.app_settings

        # Conversation store (opened lazily by open())
        self.database = ChatHistoryDatabase(settings.chat_history_db_url)
        self.conversation_repository: Optional[ConversationRepository] = None

        # Backend adapters
        self.local_backend = LocalBackend(
            base_url=settings.local_backend_url,
            timeout=settings.local_backend_timeout,
            transport=local_transport,
        )
        self.routed_backend = RoutedBackend(
            api_key=settings.routed_api_key,
            base_url=settings.routed_backend_url,
            default_model=settings.routed_model,
            timeout=settings.routed_backend_timeout,
            debug_mode=settings.debug_mode,
            suppress_logging=settings.feature_suppress_litellm_logging,
        )
        self.chat_proxy = ChatProxy(self.local_backend, self.routed_backend)
        self.title_generator = TitleGenerator(
            self.local_backend,
            model=settings.title_model,
            timeout=settings.title_timeout,
        )

        logger.info("AppFactory initialized")

    @property
    def is_open(self) -> bool:
        return self.conversation_repository is not None

    def open(self) -> "AppFactory":
        """Open the conversation store. Safe to call twice."""
        if self.conversation_repository is None:
            self.database.open()
            self.conversation_repository = ConversationRepository(
                self.database.session_factory,
                max_message_length=self.config_manager.app_settings.max_message_length,
            )
            logger.info("Conversation store opened")
        return self

    def close(self) -> None:
        if self.conversation_repository is not None:
            self.conversation_repository = None
            self.database.close()
            logger.info("Conversation store closed")

    # Accessors
    def get_config_manager(self) -> ConfigManager:  # noqa: D401
        return self.config_manager

    def get_conversation_repository(self) -> ConversationRepository:  # noqa: D401
        if self.conversation_repository is None:
            raise RuntimeError("Conversation store is not open; call AppFactory.open() first")
        return self.conversation_repository

    def get_chat_proxy(self) -> ChatProxy:  # noqa: D401
        return self.chat_proxy

    def get_title_generator(self) -> TitleGenerator:  # noqa: D401
        return self.title_generator
