"""Chat completion proxy routes for the local and routed backends."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, StrictStr

from relaychat.core.log_sanitizer import get_current_user
from relaychat.domain.conversations.models import Backend
from relaychat.modules.llm import ChatProxy

from .dependencies import get_chat_proxy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


class LocalChatRequest(BaseModel):
    messages: List[Dict[str, Any]]
    model: Optional[StrictStr] = None


class RoutedChatRequest(BaseModel):
    messages: List[Dict[str, Any]]


@router.post("/chat-local")
async def chat_local(
    body: LocalChatRequest,
    current_user: str = Depends(get_current_user),
    proxy: ChatProxy = Depends(get_chat_proxy),
) -> Dict[str, str]:
    """Complete a conversation on the local backend with the selected model."""
    content = await proxy.complete(body.messages, body.model, Backend.LOCAL.value, owner=current_user)
    return {"content": content}


@router.post("/chat-routed")
async def chat_routed(
    body: RoutedChatRequest,
    current_user: str = Depends(get_current_user),
    proxy: ChatProxy = Depends(get_chat_proxy),
) -> Dict[str, str]:
    """Complete a conversation on the routed backend with its configured model."""
    content = await proxy.complete(body.messages, None, Backend.ROUTED.value, owner=current_user)
    return {"content": content}


@router.get("/local-models")
async def local_models(proxy: ChatProxy = Depends(get_chat_proxy)) -> Dict[str, Any]:
    """Backend-native list of models installed on the local server."""
    return await proxy.list_local_models()
