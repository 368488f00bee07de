import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew.db.postgres import get_db
from autocrew.models.invitation import Invitation
from autocrew.models.organization import Client
from autocrew.models.session import AuthSession
from autocrew.models.user import User
from autocrew.schemas.user import (
    ActiveOrganizationUpdate,
    MagicLinkVerify,
    PasswordSetup,
    TokenWithUser,
    UserResponse,
)
from autocrew.security import (
    clear_session_cookie,
    create_session,
    get_current_session,
    get_current_user,
    get_password_hash,
    get_scope,
    list_membership_org_ids,
    normalize_email,
    set_session_cookie,
    verify_password,
)
from autocrew.utils.tenant import Scope, SessionContext, get_scoped_or_404

logger = logging.getLogger(__name__)

router = APIRouter()


async def build_user_response(db: AsyncSession, user: User, active_org_id=None) -> UserResponse:
    """Build UserResponse with the user's current memberships."""
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        is_active=user.is_active,
        email_verified=user.email_verified,
        created_at=user.created_at,
        organization_ids=await list_membership_org_ids(db, user.id),
        active_org_id=active_org_id,
    )


@router.post("/login", response_model=TokenWithUser)
async def login(
    request: Request,
    response: Response,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: AsyncSession = Depends(get_db)
):
    email = normalize_email(form_data.username)
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.info("Failed login for %s", email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )

    auth_session, access_token = await create_session(db, user, request)
    set_session_cookie(response, access_token)

    return TokenWithUser(
        access_token=access_token,
        token_type="bearer",
        user=await build_user_response(db, user, auth_session.active_org_id)
    )


@router.post("/magic-link/verify", response_model=TokenWithUser)
async def verify_magic_link(
    data: MagicLinkVerify,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """Exchange an invitation token for a session. Tokens are single use."""
    result = await db.execute(select(Invitation).where(Invitation.token == data.token))
    invitation = result.scalar_one_or_none()

    if not invitation or not invitation.is_valid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired magic link"
        )

    result = await db.execute(select(User).where(User.email == invitation.email))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired magic link"
        )

    invitation.status = "accepted"
    invitation.accepted_at = datetime.utcnow()
    user.email_verified = True
    await db.commit()

    auth_session, access_token = await create_session(db, user, request, active_org_id=invitation.org_id)
    set_session_cookie(response, access_token)
    logger.info("Magic link accepted by %s", user.email)

    return TokenWithUser(
        access_token=access_token,
        token_type="bearer",
        user=await build_user_response(db, user, auth_session.active_org_id)
    )


@router.post("/setup-password", status_code=status.HTTP_204_NO_CONTENT)
async def setup_password(
    data: PasswordSetup,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Set the first password of an invited user."""
    if current_user.hashed_password:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Password already set"
        )

    current_user.hashed_password = get_password_hash(data.password)
    await db.commit()


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    response: Response,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(select(AuthSession).where(AuthSession.id == session.session_id))
    auth_session = result.scalar_one()
    auth_session.revoked_at = datetime.utcnow()
    await db.commit()
    clear_session_cookie(response)


@router.get("/me", response_model=UserResponse)
async def get_me(
    session: SessionContext = Depends(get_current_session),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await build_user_response(db, current_user, session.active_org_id)


@router.post("/active-organization", response_model=UserResponse)
async def set_active_organization(
    data: ActiveOrganizationUpdate,
    session: SessionContext = Depends(get_current_session),
    scope: Scope = Depends(get_scope),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Switch the organization the dashboard works in."""
    await get_scoped_or_404(db, Client, data.org_id, scope, "Client")

    result = await db.execute(select(AuthSession).where(AuthSession.id == session.session_id))
    auth_session = result.scalar_one()
    auth_session.active_org_id = data.org_id
    await db.commit()

    return await build_user_response(db, current_user, data.org_id)
