"""Crew model: an AI chat or lead-generation agent owned by one client."""

import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from autocrew.db.postgres import Base


class Crew(Base):
    __tablename__ = "crews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100))
    crew_code: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    type: Mapped[str] = mapped_column(String(32), index=True)
    status: Mapped[str] = mapped_column(String(20), default="inactive", index=True)
    webhook_url: Mapped[str] = mapped_column(String(500))

    # Widget settings, agent metadata, activation state
    config: Mapped[dict] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=dict)

    org_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="CASCADE"),
        index=True
    )
    organization = relationship("Client", back_populates="crews")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    conversations = relationship("Conversation", back_populates="crew", cascade="all, delete-orphan")
    documents = relationship("KnowledgeBaseDocument", back_populates="crew", cascade="all, delete-orphan")
