"""Clients API - tenant organizations, their codes and slugs."""

import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import asc, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew.db.postgres import get_db
from autocrew.db.transaction import insert_with_retry
from autocrew.models.crew import Crew
from autocrew.models.organization import Client
from autocrew.schemas.client import ClientCreate, ClientResponse, ClientStatus, ClientPlan, ClientUpdate
from autocrew.schemas.crew import CrewResponse
from autocrew.security import get_scope, require_permission
from autocrew.utils.generators import generate_client_code, generate_slug, generate_unique_slug
from autocrew.utils.tenant import Scope, SessionContext, get_scoped_or_404, scope_filter

logger = logging.getLogger(__name__)

router = APIRouter()

SORT_COLUMNS = {
    "created_at": Client.created_at,
    "updated_at": Client.updated_at,
    "company_name": Client.company_name,
    "status": Client.status,
    "plan": Client.plan,
}


async def slug_exists(db: AsyncSession, slug: str) -> bool:
    result = await db.execute(select(Client.id).where(Client.slug == slug).limit(1))
    return result.first() is not None


async def list_client_codes(db: AsyncSession, prefix: str) -> list[str]:
    result = await db.execute(select(Client.client_code).where(Client.client_code.startswith(prefix)))
    return list(result.scalars().all())


async def allocate_client_identifiers(db: AsyncSession, company_name: str) -> tuple[str, str]:
    """Return a fresh (client_code, slug) pair for a company name."""
    client_code = await generate_client_code(company_name, lambda prefix: list_client_codes(db, prefix))

    base_slug = generate_slug(company_name)
    if len(base_slug) < 3:
        # Names like "X" or "!!!" still need a usable slug
        base_slug = generate_slug(client_code)
    slug = await generate_unique_slug(base_slug, lambda candidate: slug_exists(db, candidate))
    return client_code, slug


@router.get("", response_model=list[ClientResponse])
async def list_clients(
    status_filter: ClientStatus | None = Query(default=None, alias="status"),
    plan: ClientPlan | None = None,
    sort_by: Literal["created_at", "updated_at", "company_name", "status", "plan"] = "created_at",
    order: Literal["asc", "desc"] = "desc",
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    """List clients visible to the caller. SuperAdmins see all of them."""
    query = select(Client).where(scope_filter(Client, scope))
    if status_filter:
        query = query.where(Client.status == status_filter)
    if plan:
        query = query.where(Client.plan == plan)

    sort_column = SORT_COLUMNS[sort_by]
    query = query.order_by(asc(sort_column) if order == "asc" else desc(sort_column))

    result = await db.execute(query)
    return result.scalars().all()


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    data: ClientCreate,
    session: SessionContext = Depends(require_permission("manage_clients")),
    db: AsyncSession = Depends(get_db)
):
    """Create a client with a generated client code and slug."""
    async def build() -> Client:
        client_code, slug = await allocate_client_identifiers(db, data.company_name)
        return Client(**data.model_dump(), client_code=client_code, slug=slug)

    client = await insert_with_retry(db, build, resource="client")
    logger.info("Created client %s (%s)", client.client_code, client.slug)
    return client


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: UUID,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    return await get_scoped_or_404(db, Client, client_id, scope, "Client")


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: UUID,
    data: ClientUpdate,
    session: SessionContext = Depends(require_permission("manage_clients")),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    """Update a client. The client code and slug never change."""
    client = await get_scoped_or_404(db, Client, client_id, scope, "Client")

    for key, value in data.model_dump(exclude_unset=True).items():
        if value is None and key in ("company_name", "contact_person_name", "contact_email", "plan", "status"):
            raise HTTPException(status_code=400, detail=f"{key} cannot be null")
        setattr(client, key, value)

    await db.commit()
    await db.refresh(client)
    return client


@router.delete("/{client_id}")
async def delete_client(
    client_id: UUID,
    session: SessionContext = Depends(require_permission("manage_clients")),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    """Delete a client and everything it owns."""
    client = await get_scoped_or_404(db, Client, client_id, scope, "Client")

    await db.delete(client)
    await db.commit()
    logger.info("Deleted client %s", client_id)
    return {"status": "deleted", "client_id": str(client_id)}


@router.get("/{client_id}/crews", response_model=list[CrewResponse])
async def list_client_crews(
    client_id: UUID,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    client = await get_scoped_or_404(db, Client, client_id, scope, "Client")

    result = await db.execute(
        select(Crew)
        .where(Crew.org_id == client.id)
        .order_by(Crew.created_at.desc())
    )
    return result.scalars().all()
