import logging
from datetime import datetime, timedelta
from typing import Callable
from uuid import UUID

import bcrypt
from email_validator import EmailNotValidError, validate_email
from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from autocrew.config import get_settings
from autocrew.db.postgres import get_db
from autocrew.models.member import Membership
from autocrew.models.role import role_has_permission
from autocrew.models.session import AuthSession
from autocrew.models.user import User
from autocrew.utils.tenant import Scope, SessionContext, resolve_scope

logger = logging.getLogger(__name__)

settings = get_settings()

# Browsers send the cookie; API clients may send a bearer token instead
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

ALGORITHM = "HS256"


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    return bcrypt.checkpw(plain_password.encode(), hashed_password.encode())


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def normalize_email(value: str) -> str:
    """Normalize an address the way `EmailStr` stored it (lowercased domain)."""
    try:
        return validate_email(value.strip(), check_deliverability=False).normalized
    except EmailNotValidError:
        return value.strip()


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(seconds=settings.session_expire_seconds)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)
    return encoded_jwt


async def create_session(
    db: AsyncSession,
    user: User,
    request: Request | None = None,
    active_org_id: UUID | None = None,
) -> tuple[AuthSession, str]:
    """Persist a new login session and return it with its signed token."""
    if active_org_id is None and not user.is_super_admin:
        result = await db.execute(
            select(Membership.org_id)
            .where(Membership.user_id == user.id)
            .order_by(Membership.created_at)
            .limit(1)
        )
        active_org_id = result.scalar_one_or_none()

    auth_session = AuthSession(
        user_id=user.id,
        active_org_id=active_org_id,
        expires_at=datetime.utcnow() + timedelta(seconds=settings.session_expire_seconds),
        ip_address=request.client.host if request and request.client else None,
        user_agent=request.headers.get("user-agent", "")[:255] if request else None,
    )
    db.add(auth_session)
    await db.commit()
    await db.refresh(auth_session)

    token = create_access_token(data={"sub": str(user.id), "sid": str(auth_session.id)})
    return auth_session, token


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_expire_seconds,
        httponly=True,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.session_cookie_name)


def _read_token(request: Request, bearer_token: str | None) -> str | None:
    return bearer_token or request.cookies.get(settings.session_cookie_name)


async def get_current_session(
    request: Request,
    bearer_token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> SessionContext:
    """
    Authoritatively verify the caller's session.

    The edge gate only checked that a cookie or header is present; here the
    token signature, the session row, its expiry and the user are all
    checked again. Sessions older than the update age get their expiry
    pushed forward.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    token = _read_token(request, bearer_token)
    if not token:
        raise credentials_exception

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        user_id = UUID(payload.get("sub"))
        session_id = UUID(payload.get("sid"))
    except (JWTError, TypeError, ValueError):
        logger.info("Rejected malformed session token")
        raise credentials_exception

    result = await db.execute(
        select(AuthSession)
        .options(selectinload(AuthSession.user))
        .where(AuthSession.id == session_id, AuthSession.user_id == user_id)
    )
    auth_session = result.scalar_one_or_none()
    if auth_session is None or not auth_session.is_valid:
        logger.info("Rejected expired or revoked session %s", session_id)
        raise credentials_exception

    user = auth_session.user
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Inactive user")

    now = datetime.utcnow()
    if now - auth_session.updated_at >= timedelta(seconds=settings.session_update_age_seconds):
        auth_session.expires_at = now + timedelta(seconds=settings.session_expire_seconds)
        auth_session.updated_at = now
        await db.commit()

    return SessionContext(
        user_id=user.id,
        role=user.role,
        session_id=auth_session.id,
        active_org_id=auth_session.active_org_id,
    )


async def get_current_user(
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
) -> User:
    result = await db.execute(select(User).where(User.id == session.user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate credentials")
    return user


async def list_membership_org_ids(db: AsyncSession, user_id: UUID) -> list[UUID]:
    result = await db.execute(select(Membership.org_id).where(Membership.user_id == user_id))
    return list(result.scalars().all())


async def get_scope(
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
) -> Scope:
    """Dependency resolving the organizations the caller may act on."""
    return await resolve_scope(session, lambda user_id: list_membership_org_ids(db, user_id))


def require_permission(permission: str) -> Callable:
    """
    Dependency factory that checks if the caller's role grants a permission.

    Usage:
        @router.delete("/{client_id}")
        async def delete_client(
            client_id: UUID,
            session: SessionContext = Depends(require_permission("manage_clients"))
        ):
            ...
    """
    async def permission_checker(
        session: SessionContext = Depends(get_current_session)
    ) -> SessionContext:
        if not role_has_permission(session.role, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {permission}"
            )
        return session
    return permission_checker


def require_super_admin() -> Callable:
    """Dependency that requires the SuperAdmin role."""
    return require_permission("view_admin_dashboard")
