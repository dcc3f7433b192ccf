"""SQLAlchemy models for all database tables."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import TIMESTAMP, Boolean, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from duri_tracking.database.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Company(Base):
    """Client company derived from task titles by the sync sweep."""

    __tablename__ = "companies"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(150), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()", nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()", onupdate=_utcnow
    )

    # Relationships
    users: Mapped[list["UserProfile"]] = relationship(
        "UserProfile", back_populates="company"
    )


class UserProfile(Base):
    """Dashboard user; ``id`` equals the identity provider's user id."""

    __tablename__ = "user_profiles"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    # Stored lowercased; uniqueness is therefore case-insensitive.
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="viewer"
    )  # admin | manager | operator | viewer
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    company_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()", nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()", onupdate=_utcnow
    )

    # Relationships
    company: Mapped[Optional["Company"]] = relationship(
        "Company", back_populates="users", lazy="joined"
    )

    @property
    def company_name(self) -> Optional[str]:
        return self.company.name if self.company is not None else None
