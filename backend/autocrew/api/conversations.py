"""Conversations API - transcripts captured by crews, read-mostly."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew.db.postgres import get_db
from autocrew.models.conversation import Conversation
from autocrew.schemas.conversation import ConversationResponse, ConversationUpdate, Sentiment
from autocrew.security import get_scope, require_permission
from autocrew.utils.tenant import Scope, SessionContext, get_scoped_or_404, scope_filter

router = APIRouter()


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    crew_id: UUID | None = None,
    sentiment: Sentiment | None = None,
    resolved: bool | None = None,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    """List conversations in the caller's organizations, newest first."""
    query = select(Conversation).where(scope_filter(Conversation, scope))
    if crew_id:
        query = query.where(Conversation.crew_id == crew_id)
    if sentiment:
        query = query.where(Conversation.sentiment == sentiment)
    if resolved is not None:
        query = query.where(Conversation.resolved == resolved)

    result = await db.execute(
        query.order_by(Conversation.created_at.desc()).limit(limit).offset(offset)
    )
    return result.scalars().all()


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    return await get_scoped_or_404(db, Conversation, conversation_id, scope, "Conversation")


@router.patch("/{conversation_id}", response_model=ConversationResponse)
async def update_conversation(
    conversation_id: UUID,
    data: ConversationUpdate,
    session: SessionContext = Depends(require_permission("manage_conversations")),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    """Mark a conversation resolved or correct its sentiment."""
    conversation = await get_scoped_or_404(db, Conversation, conversation_id, scope, "Conversation")

    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(conversation, key, value)

    await db.commit()
    await db.refresh(conversation)
    return conversation
