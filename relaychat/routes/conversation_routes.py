"""REST API routes for conversation history management."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, StrictStr

from relaychat.core.log_sanitizer import get_current_user, sanitize_for_logging
from relaychat.domain.conversations.models import Backend
from relaychat.infrastructure.app_factory import AppFactory
from relaychat.modules.chat_history import ConversationRepository

from .dependencies import get_app_factory, get_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


class CreateConversationRequest(BaseModel):
    title: Optional[StrictStr] = None
    model: Optional[StrictStr] = None
    llm: StrictStr = Backend.LOCAL.value


class UpdateTitleRequest(BaseModel):
    title: StrictStr


class AppendMessageRequest(BaseModel):
    role: StrictStr
    content: StrictStr
    model: Optional[StrictStr] = None
    llm: Optional[StrictStr] = None


@router.get("")
async def list_conversations(
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    current_user: str = Depends(get_current_user),
    repo: ConversationRepository = Depends(get_repository),
) -> List[Dict[str, Any]]:
    """List conversations for the current owner, most recently active first."""
    conversations = repo.list_conversations(current_user, limit=limit, offset=offset)
    return [c.to_dict() for c in conversations]


@router.post("")
async def create_conversation(
    body: CreateConversationRequest,
    factory: AppFactory = Depends(get_app_factory),
    current_user: str = Depends(get_current_user),
    repo: ConversationRepository = Depends(get_repository),
) -> Dict[str, Any]:
    """Create an empty conversation."""
    settings = factory.config_manager.app_settings
    title = body.title if body.title is not None else settings.default_conversation_title
    conversation = repo.create_conversation(current_user, title, body.model, body.llm)
    return conversation.to_dict()


@router.get("/search")
async def search_conversations(
    q: str = Query(..., min_length=1),
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    current_user: str = Depends(get_current_user),
    repo: ConversationRepository = Depends(get_repository),
) -> List[Dict[str, Any]]:
    """Search conversations by content or title."""
    conversations = repo.search_conversations(current_user, q, limit=limit)
    return [c.to_dict() for c in conversations]


@router.get("/{conversation_id}")
async def get_conversation(
    conversation_id: str,
    current_user: str = Depends(get_current_user),
    repo: ConversationRepository = Depends(get_repository),
) -> Dict[str, Any]:
    """Get a full conversation with all messages."""
    return repo.get_conversation(conversation_id, owner=current_user).to_dict()


@router.delete("/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    current_user: str = Depends(get_current_user),
    repo: ConversationRepository = Depends(get_repository),
) -> Dict[str, bool]:
    """Delete a conversation and its messages. Absent ids succeed too."""
    deleted = repo.delete_conversation(conversation_id, owner=current_user)
    if not deleted:
        logger.debug("Delete requested for absent conversation %s", sanitize_for_logging(conversation_id))
    return {"success": True}


@router.patch("/{conversation_id}")
async def update_title(
    conversation_id: str,
    body: UpdateTitleRequest,
    current_user: str = Depends(get_current_user),
    repo: ConversationRepository = Depends(get_repository),
) -> Dict[str, Any]:
    """Rename a conversation. Last write wins."""
    return repo.rename_conversation(conversation_id, body.title, owner=current_user).to_dict()


@router.post("/{conversation_id}/messages")
async def append_message(
    conversation_id: str,
    body: AppendMessageRequest,
    current_user: str = Depends(get_current_user),
    repo: ConversationRepository = Depends(get_repository),
) -> Dict[str, Any]:
    """Append a message and return the conversation's full transcript."""
    repo.append_message(
        conversation_id,
        body.role,
        body.content,
        model=body.model,
        backend=body.llm,
        owner=current_user,
    )
    return repo.get_conversation(conversation_id, owner=current_user).to_dict()
