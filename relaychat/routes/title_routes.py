"""Title generation route: generate a title and store it on the conversation."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, StrictStr

from relaychat.core.log_sanitizer import get_current_user, sanitize_for_logging
from relaychat.modules.chat_history import ConversationRepository
from relaychat.modules.titles import TitleGenerator

from .dependencies import get_repository, get_title_generator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["titles"])


class GenerateTitleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: Optional[StrictStr] = Field(default=None, alias="conversationId")
    message_content: Optional[StrictStr] = Field(default=None, alias="messageContent")
    messages: Optional[List[Dict[str, Any]]] = None


@router.post("/generate-title")
async def generate_title(
    body: GenerateTitleRequest,
    current_user: str = Depends(get_current_user),
    repo: ConversationRepository = Depends(get_repository),
    generator: TitleGenerator = Depends(get_title_generator),
) -> Dict[str, str]:
    """Generate a short title from a history (preferred) or a single message."""
    if not body.conversation_id:
        raise HTTPException(status_code=400, detail="Invalid conversation ID")

    has_content = bool(body.message_content and body.message_content.strip())
    if not body.messages and not has_content:
        raise HTTPException(status_code=400, detail="Either messageContent or a messages array is required")

    # Fails with 404 before the backend is asked
    repo.get_conversation(body.conversation_id, owner=current_user)

    source = body.messages if body.messages else body.message_content
    title = await generator.generate_title(source, owner=current_user)

    repo.rename_conversation(body.conversation_id, title, owner=current_user)
    logger.info(
        "Stored generated title for %s: %s",
        sanitize_for_logging(body.conversation_id),
        sanitize_for_logging(title),
    )
    return {"title": title}
