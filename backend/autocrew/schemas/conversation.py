from pydantic import BaseModel
from typing import Literal
from uuid import UUID
from datetime import datetime

Sentiment = Literal["positive", "neutral", "negative"]


class ConversationUpdate(BaseModel):
    resolved: bool | None = None
    sentiment: Sentiment | None = None


class ConversationResponse(BaseModel):
    id: UUID
    org_id: UUID
    crew_id: UUID
    visitor_id: str
    transcript: list
    customer_name: str | None
    customer_email: str | None
    sentiment: str | None
    resolved: bool
    duration_seconds: int | None
    created_at: datetime

    class Config:
        from_attributes = True
