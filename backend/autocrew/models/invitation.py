"""Invitation model for magic link client-admin onboarding."""

import uuid
from datetime import datetime, timedelta
from sqlalchemy import String, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autocrew.db.postgres import Base


class Invitation(Base):
    """Pending magic link for a user created by a SuperAdmin."""

    __tablename__ = "invitations"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(255), index=True)
    token: Mapped[str] = mapped_column(String(64), unique=True, index=True)

    org_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False
    )
    organization = relationship("Client", back_populates="invitations")

    # Who sent the invitation
    invited_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    # Status tracking
    status: Mapped[str] = mapped_column(
        String(20), default="pending"
    )  # pending, accepted, expired, revoked

    expires_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.utcnow() + timedelta(hours=1)
    )
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    @property
    def is_valid(self) -> bool:
        """Check if invitation is still valid."""
        return (
            self.status == "pending" and
            datetime.utcnow() < self.expires_at
        )
