from pydantic import BaseModel, EmailStr, Field
from typing import Literal
from uuid import UUID
from datetime import datetime

ClientPlan = Literal["starter", "professional", "enterprise"]
ClientStatus = Literal["active", "inactive", "trial"]


class ClientBase(BaseModel):
    company_name: str = Field(min_length=1, max_length=255)
    contact_person_name: str = Field(min_length=1, max_length=255)
    contact_email: EmailStr
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None
    plan: ClientPlan


class ClientCreate(ClientBase):
    status: ClientStatus = "trial"


class ClientUpdate(BaseModel):
    company_name: str | None = Field(default=None, min_length=1, max_length=255)
    contact_person_name: str | None = Field(default=None, min_length=1, max_length=255)
    contact_email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None
    plan: ClientPlan | None = None
    status: ClientStatus | None = None


class ClientResponse(ClientBase):
    id: UUID
    client_code: str
    slug: str
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
