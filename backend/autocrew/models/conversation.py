"""Conversation transcripts captured by a crew's chat widget."""

import uuid
from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from autocrew.db.postgres import Base


class Conversation(Base):
    __tablename__ = "conversations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="CASCADE"),
        index=True
    )
    crew_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("crews.id", ondelete="CASCADE"),
        index=True
    )
    crew = relationship("Crew", back_populates="conversations")

    # Widget visitor session identifier
    visitor_id: Mapped[str] = mapped_column(String(255))

    # [{"role": "user" | "assistant", "content": str, "timestamp": iso8601}]
    transcript: Mapped[list] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=list)

    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sentiment: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    resolved: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
