from pydantic import BaseModel, EmailStr, Field
from uuid import UUID
from datetime import datetime


class UserResponse(BaseModel):
    id: UUID
    email: str
    name: str
    role: str
    is_active: bool
    email_verified: bool
    created_at: datetime
    organization_ids: list[UUID] = []
    active_org_id: UUID | None = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenWithUser(Token):
    user: UserResponse


class MagicLinkVerify(BaseModel):
    token: str


class PasswordSetup(BaseModel):
    password: str = Field(min_length=8, max_length=128)


class ActiveOrganizationUpdate(BaseModel):
    org_id: UUID


class ClientAdminCreate(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=255)
    client_id: UUID


class ClientAdminResponse(BaseModel):
    id: UUID
    email: str
    name: str
    role: str
    client_id: UUID
    client_name: str
    magic_link: str


class InvitationResend(BaseModel):
    email: EmailStr


class AdminStats(BaseModel):
    total_clients: int
    active_clients: int
    total_crews: int
    total_conversations: int
    total_users: int
    pending_invitations: int
    clients_by_plan: dict
