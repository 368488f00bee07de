"""Crews API - CRUD for AI agents, scoped to the caller's organizations."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew.db.postgres import get_db
from autocrew.db.transaction import insert_with_retry
from autocrew.models.conversation import Conversation
from autocrew.models.crew import Crew
from autocrew.models.organization import Client
from autocrew.schemas.conversation import ConversationResponse
from autocrew.schemas.crew import CrewConfigUpdate, CrewCreate, CrewResponse, CrewStatus, CrewType, CrewUpdate
from autocrew.security import get_scope, require_permission
from autocrew.utils.activation import origin_hash, with_activation
from autocrew.utils.generators import generate_crew_code
from autocrew.utils.tenant import Scope, SessionContext, get_scoped_or_404, scope_filter, set_tenant

logger = logging.getLogger(__name__)

router = APIRouter()

IMMUTABLE_FIELDS = ("type", "client_id", "crew_code")


async def list_crew_codes(db: AsyncSession, prefix: str) -> list[str]:
    result = await db.execute(select(Crew.crew_code).where(Crew.crew_code.startswith(prefix)))
    return list(result.scalars().all())


@router.get("", response_model=list[CrewResponse])
async def list_crews(
    client_id: UUID | None = None,
    crew_type: CrewType | None = Query(default=None, alias="type"),
    status_filter: CrewStatus | None = Query(default=None, alias="status"),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    """List crews. Filtering by a client outside the caller's scope yields nothing."""
    query = select(Crew).where(scope_filter(Crew, scope))
    if client_id:
        query = query.where(Crew.org_id == client_id)
    if crew_type:
        query = query.where(Crew.type == crew_type)
    if status_filter:
        query = query.where(Crew.status == status_filter)

    result = await db.execute(query.order_by(Crew.created_at.desc()))
    return result.scalars().all()


@router.post("", response_model=CrewResponse, status_code=status.HTTP_201_CREATED)
async def create_crew(
    data: CrewCreate,
    session: SessionContext = Depends(require_permission("manage_crews")),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    """Create a crew for a client with a generated crew code."""
    client = await get_scoped_or_404(db, Client, data.client_id, scope, "Client")
    client_id = client.id
    client_code = client.client_code
    config = data.config.model_dump(exclude_none=True) if data.config else {}

    async def build() -> Crew:
        crew_code = await generate_crew_code(
            client_code, data.type, lambda prefix: list_crew_codes(db, prefix)
        )
        crew = Crew(
            name=data.name,
            crew_code=crew_code,
            type=data.type,
            status=data.status,
            webhook_url=str(data.webhook_url),
            config=config,
        )
        set_tenant(crew, client_id)
        return crew

    crew = await insert_with_retry(db, build, resource="crew")
    logger.info("Created crew %s for client %s", crew.crew_code, client_code)
    return crew


@router.get("/{crew_id}", response_model=CrewResponse)
async def get_crew(
    crew_id: UUID,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    return await get_scoped_or_404(db, Crew, crew_id, scope, "Crew")


@router.patch("/{crew_id}", response_model=CrewResponse)
async def update_crew(
    crew_id: UUID,
    data: CrewUpdate,
    session: SessionContext = Depends(require_permission("edit_crews")),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    """Update name, status, webhook URL or config. Type, client and code are fixed."""
    crew = await get_scoped_or_404(db, Crew, crew_id, scope, "Crew")

    changes = data.model_dump(exclude_unset=True)
    rejected = [field for field in IMMUTABLE_FIELDS if field in changes]
    if rejected:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot update immutable fields: {', '.join(rejected)}"
        )

    if data.name is not None:
        crew.name = data.name
    if data.status is not None:
        crew.status = data.status
    if data.webhook_url is not None:
        crew.webhook_url = str(data.webhook_url)
    if data.config is not None:
        # Merge so a partial update keeps the sections it does not mention
        crew.config = {**(crew.config or {}), **data.config.model_dump(exclude_none=True)}

    await db.commit()
    await db.refresh(crew)
    return crew


@router.patch("/{crew_id}/config", response_model=CrewResponse)
async def update_crew_config(
    crew_id: UUID,
    data: CrewConfigUpdate,
    session: SessionContext = Depends(require_permission("edit_crews")),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    """
    Set the support contact and/or widget settings of a crew.

    Setting the support contact stores an origin hash of
    ``crew_code:allowed_domain`` for the chat trigger and marks support as
    configured in the activation state.
    """
    if not data.updates_support and data.widget_settings is None:
        raise HTTPException(status_code=400, detail="No configuration provided to update")

    crew = await get_scoped_or_404(db, Crew, crew_id, scope, "Crew")
    config = dict(crew.config or {})

    if data.updates_support:
        config["metadata"] = {
            **(config.get("metadata") or {}),
            "support_email": str(data.support_email),
            "support_client_name": data.support_client_name,
            "agent_name": data.agent_name,
            "allowed_domain": data.allowed_domain,
            "origin_hash": origin_hash(crew.crew_code, data.allowed_domain),
        }
        config = with_activation(config, support_configured=True)

    if data.widget_settings is not None:
        config["widget_settings"] = {
            **(config.get("widget_settings") or {}),
            **data.widget_settings.model_dump(exclude_none=True),
        }

    crew.config = config
    await db.commit()
    await db.refresh(crew)

    logger.info(
        "Updated config of crew %s (support=%s, widget=%s)",
        crew.crew_code, data.updates_support, data.widget_settings is not None,
    )
    return crew


@router.get("/{crew_id}/conversations", response_model=list[ConversationResponse])
async def list_crew_conversations(
    crew_id: UUID,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    crew = await get_scoped_or_404(db, Crew, crew_id, scope, "Crew")

    result = await db.execute(
        select(Conversation)
        .where(Conversation.crew_id == crew.id)
        .order_by(Conversation.created_at.desc())
    )
    return result.scalars().all()


@router.delete("/{crew_id}")
async def delete_crew(
    crew_id: UUID,
    session: SessionContext = Depends(require_permission("manage_crews")),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    """Delete a crew with its conversations and document records."""
    crew = await get_scoped_or_404(db, Crew, crew_id, scope, "Crew")

    await db.delete(crew)
    await db.commit()
    return {"status": "deleted", "crew_id": str(crew_id)}
