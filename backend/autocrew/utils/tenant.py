"""Multi-tenancy utilities: who may act on which organization's rows.

Every scoped row carries exactly one ``org_id``. A caller's scope is either
every organization (SuperAdmin) or the organizations they are a member of,
looked up fresh for each request.
"""

import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable

from fastapi import HTTPException, status
from sqlalchemy import false, select, true
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew.models.role import UserRole


class _AllOrganizations:
    """Sentinel scope for SuperAdmin callers."""

    def __contains__(self, org_id) -> bool:
        return True

    def __repr__(self) -> str:
        return "ALL_ORGANIZATIONS"


ALL_ORGANIZATIONS = _AllOrganizations()

MembershipLookup = Callable[[uuid.UUID], Awaitable[Iterable[uuid.UUID]]]


@dataclass(frozen=True)
class SessionContext:
    """The authenticated caller, as re-verified for the current request."""

    user_id: uuid.UUID
    role: str
    session_id: uuid.UUID | None = None
    active_org_id: uuid.UUID | None = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN.value


@dataclass(frozen=True)
class Scope:
    role: str
    allowed_org_ids: frozenset[uuid.UUID] | _AllOrganizations

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN.value


async def resolve_scope(session: SessionContext, list_membership_org_ids: MembershipLookup) -> Scope:
    """
    Resolve the organizations a session may act on.

    SuperAdmins are never looked up. Everyone else goes through
    `list_membership_org_ids`, so a membership removed since login takes
    effect immediately.
    """
    if session.is_super_admin:
        return Scope(role=session.role, allowed_org_ids=ALL_ORGANIZATIONS)

    org_ids = await list_membership_org_ids(session.user_id)
    return Scope(role=session.role, allowed_org_ids=frozenset(org_ids))


def authorize(scope: Scope, resource_org_id: uuid.UUID | None) -> bool:
    if scope.is_super_admin:
        return True
    return resource_org_id is not None and resource_org_id in scope.allowed_org_ids


def scope_filter(model, scope: Scope):
    """
    Return a SQLAlchemy filter clause limiting `model` rows to the scope.

    Usage:
        query = select(Crew).where(scope_filter(Crew, scope))
    """
    if scope.is_super_admin:
        return true()
    if not scope.allowed_org_ids:
        return false()
    return model.org_id.in_(list(scope.allowed_org_ids))


async def get_scoped_or_404(db: AsyncSession, model, object_id: uuid.UUID, scope: Scope, label: str):
    """
    Load one scoped row or raise 404.

    A row owned by another organization gets the same 404 as a missing one
    so callers cannot discover other tenants' ids.
    """
    result = await db.execute(select(model).where(model.id == object_id))
    obj = result.scalar_one_or_none()

    if obj is None or not authorize(scope, obj.org_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")

    return obj


def set_tenant(obj, org_id: uuid.UUID):
    """Set the owning organization on a model instance before creation."""
    obj.org_id = org_id
