import re

from pydantic import BaseModel, EmailStr, Field, HttpUrl, model_validator
from typing import Literal
from uuid import UUID
from datetime import datetime

CrewType = Literal["customer_support", "lead_generation"]
CrewStatus = Literal["active", "inactive", "error"]


class WidgetSettings(BaseModel):
    primary_color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    position: Literal["bottom-right", "bottom-left"] | None = None
    theme: Literal["light", "dark", "auto"] | None = None
    widget_title: str | None = Field(default=None, max_length=50)
    widget_subtitle: str | None = Field(default=None, max_length=100)
    welcome_message: str | None = Field(default=None, max_length=500)
    first_launch_action: Literal["none", "auto-open", "show-greeting"] | None = None
    greeting_delay: int | None = Field(default=None, ge=0, le=30000)


class CrewConfig(BaseModel):
    metadata: dict | None = None
    widget_settings: WidgetSettings | None = None
    activation_state: dict | None = None


class CrewCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    client_id: UUID
    type: CrewType
    webhook_url: HttpUrl
    status: CrewStatus = "inactive"
    config: CrewConfig | None = None


class CrewUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    status: CrewStatus | None = None
    webhook_url: HttpUrl | None = None
    config: CrewConfig | None = None

    # Immutable after creation; accepted only so they can be rejected with a clear message
    type: str | None = None
    client_id: UUID | None = None
    crew_code: str | None = None


_DOMAIN = re.compile(r"[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?)*")


class CrewConfigUpdate(BaseModel):
    """Support contact and widget settings. The support fields go together."""

    support_email: EmailStr | None = None
    support_client_name: str | None = None
    agent_name: str | None = None
    allowed_domain: str | None = None
    widget_settings: WidgetSettings | None = None

    @property
    def updates_support(self) -> bool:
        return any([self.support_email, self.support_client_name, self.agent_name, self.allowed_domain])

    @model_validator(mode="after")
    def support_fields_complete(self):
        if not self.updates_support:
            return self

        if not self.support_email:
            raise ValueError("Valid support email is required")

        client_name = (self.support_client_name or "").strip()
        if not client_name:
            raise ValueError("Support client name is required")

        agent_name = (self.agent_name or "").strip()
        if len(agent_name) < 2:
            raise ValueError("Agent name is required (at least 2 characters)")
        if len(agent_name) > 50:
            raise ValueError("Agent name must be at most 50 characters")

        domain = (self.allowed_domain or "").strip()
        if not _DOMAIN.fullmatch(domain):
            raise ValueError("Valid allowed domain is required (e.g., example.com)")

        self.support_client_name = client_name
        self.agent_name = agent_name
        self.allowed_domain = domain.lower()
        return self


class CrewResponse(BaseModel):
    id: UUID
    name: str
    crew_code: str
    type: str
    status: str
    webhook_url: str
    config: dict
    org_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
