"""Request-scoped accessors for components wired by the AppFactory."""

from fastapi import Request

from relaychat.infrastructure.app_factory import AppFactory
from relaychat.modules.chat_history import ConversationRepository
from relaychat.modules.llm import ChatProxy
from relaychat.modules.titles import TitleGenerator


def get_app_factory(request: Request) -> AppFactory:
    return request.app.state.app_factory


def get_repository(request: Request) -> ConversationRepository:
    return get_app_factory(request).get_conversation_repository()


def get_chat_proxy(request: Request) -> ChatProxy:
    return get_app_factory(request).get_chat_proxy()


def get_title_generator(request: Request) -> TitleGenerator:
    return get_app_factory(request).get_title_generator()
