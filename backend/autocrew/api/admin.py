"""Admin API endpoints for client-admin onboarding and console stats."""

import logging
import secrets
from datetime import datetime, timedelta

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from autocrew.config import get_settings
from autocrew.db.postgres import get_db
from autocrew.models.conversation import Conversation
from autocrew.models.crew import Crew
from autocrew.models.invitation import Invitation
from autocrew.models.member import Membership
from autocrew.models.organization import Client
from autocrew.models.role import UserRole
from autocrew.models.user import User
from autocrew.schemas.user import AdminStats, ClientAdminCreate, ClientAdminResponse, InvitationResend
from autocrew.security import require_super_admin
from autocrew.utils.tenant import SessionContext

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter()


class UserAdminResponse(BaseModel):
    id: UUID
    email: str
    name: str
    role: str
    is_active: bool
    email_verified: bool
    created_at: datetime
    organization_ids: list[UUID]


def generate_magic_token() -> str:
    """Generate a secure random token for magic links."""
    return secrets.token_urlsafe(32)


def build_magic_link(token: str) -> str:
    return f"{settings.app_url.rstrip('/')}/setup-password?token={token}"


async def send_invitation_email(email: str, magic_link: str, client_name: str):
    """Deliver the magic link. Mail transport is not wired up, so the link is logged."""
    logger.info("Invitation for %s (%s): %s", email, client_name, magic_link)


async def issue_invitation(db: AsyncSession, email: str, org_id: UUID, invited_by_id: UUID) -> Invitation:
    """Revoke any pending invitation for the address and create a fresh one."""
    result = await db.execute(
        select(Invitation).where(Invitation.email == email, Invitation.status == "pending")
    )
    for stale in result.scalars().all():
        stale.status = "revoked"

    invitation = Invitation(
        email=email,
        token=generate_magic_token(),
        org_id=org_id,
        invited_by_id=invited_by_id,
        expires_at=datetime.utcnow() + timedelta(minutes=settings.magic_link_expire_minutes),
    )
    db.add(invitation)
    return invitation


@router.post("/create-client-admin", response_model=ClientAdminResponse, status_code=status.HTTP_201_CREATED)
async def create_client_admin(
    data: ClientAdminCreate,
    background_tasks: BackgroundTasks,
    session: SessionContext = Depends(require_super_admin()),
    db: AsyncSession = Depends(get_db)
):
    """Create an organization admin for a client and send them a magic link."""
    existing_user = await db.execute(select(User).where(User.email == data.email))
    if existing_user.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="A user with this email already exists")

    result = await db.execute(select(Client).where(Client.id == data.client_id))
    client = result.scalar_one_or_none()
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")

    user = User(
        email=data.email,
        name=data.name,
        role=UserRole.ORGANIZATION_ADMIN.value,
        email_verified=False,
    )
    db.add(user)
    await db.flush()

    db.add(Membership(user_id=user.id, org_id=client.id, role="admin"))
    invitation = await issue_invitation(db, data.email, client.id, session.user_id)
    await db.commit()

    magic_link = build_magic_link(invitation.token)
    background_tasks.add_task(send_invitation_email, data.email, magic_link, client.company_name)

    return ClientAdminResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        client_id=client.id,
        client_name=client.company_name,
        magic_link=magic_link,
    )


@router.post("/resend-invitation")
async def resend_invitation(
    data: InvitationResend,
    background_tasks: BackgroundTasks,
    session: SessionContext = Depends(require_super_admin()),
    db: AsyncSession = Depends(get_db)
):
    """Issue a new magic link for a user who has not finished setting up."""
    result = await db.execute(select(User).where(User.email == data.email))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if user.hashed_password:
        raise HTTPException(status_code=409, detail="User has already completed account setup")

    result = await db.execute(
        select(Membership, Client)
        .join(Client, Client.id == Membership.org_id)
        .where(Membership.user_id == user.id)
        .order_by(Membership.created_at)
        .limit(1)
    )
    row = result.first()
    if row is None:
        raise HTTPException(status_code=404, detail="User has no organization")
    membership, client = row

    invitation = await issue_invitation(db, user.email, membership.org_id, session.user_id)
    await db.commit()

    magic_link = build_magic_link(invitation.token)
    background_tasks.add_task(send_invitation_email, user.email, magic_link, client.company_name)

    return {
        "status": "sent",
        "email": user.email,
        "expires_at": invitation.expires_at.isoformat(),
        "magic_link": magic_link,
    }


@router.get("/users", response_model=list[UserAdminResponse])
async def list_users(
    session: SessionContext = Depends(require_super_admin()),
    db: AsyncSession = Depends(get_db)
):
    """List all users with their organization memberships."""
    result = await db.execute(select(User).order_by(User.created_at.desc()))
    users = result.scalars().all()

    result = await db.execute(select(Membership.user_id, Membership.org_id))
    memberships: dict[UUID, list[UUID]] = {}
    for user_id, org_id in result.all():
        memberships.setdefault(user_id, []).append(org_id)

    return [
        UserAdminResponse(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            is_active=user.is_active,
            email_verified=user.email_verified,
            created_at=user.created_at,
            organization_ids=memberships.get(user.id, []),
        )
        for user in users
    ]


@router.get("/stats", response_model=AdminStats)
async def get_stats(
    session: SessionContext = Depends(require_super_admin()),
    db: AsyncSession = Depends(get_db)
):
    """Console overview counts."""
    total_clients = await db.scalar(select(func.count(Client.id)))
    active_clients = await db.scalar(select(func.count(Client.id)).where(Client.status == "active"))
    total_crews = await db.scalar(select(func.count(Crew.id)))
    total_conversations = await db.scalar(select(func.count(Conversation.id)))
    total_users = await db.scalar(select(func.count(User.id)))
    pending_invitations = await db.scalar(
        select(func.count(Invitation.id)).where(Invitation.status == "pending")
    )

    result = await db.execute(select(Client.plan, func.count(Client.id)).group_by(Client.plan))
    clients_by_plan = {plan: count for plan, count in result.all()}

    return AdminStats(
        total_clients=total_clients or 0,
        active_clients=active_clients or 0,
        total_crews=total_crews or 0,
        total_conversations=total_conversations or 0,
        total_users=total_users or 0,
        pending_invitations=pending_invitations or 0,
        clients_by_plan=clients_by_plan,
    )
