"""
Organization Infrastructure Models
===================================

SQLAlchemy ORM models for SBUs, user profiles and tier assignments.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from eqms.config import SBUStatus, Tier, UserRole, UserStatus
from eqms.infrastructure.database import Base, utcnow


class SBUModel(Base):
    """
    Database model for SBU entity.

    Maps to the 'sbus' table.
    """
    __tablename__ = "sbus"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[SBUStatus] = mapped_column(String(50), nullable=False, default=SBUStatus.ACTIVE.value)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class UserProfileModel(Base):
    """
    Database model for UserProfile entity.

    Maps to the 'user_profiles' table. The primary key is the auth
    provider's user id, not generated here.
    """
    __tablename__ = "user_profiles"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(String(50), nullable=False, default=UserRole.USER.value)
    status: Mapped[UserStatus] = mapped_column(String(50), nullable=False, default=UserStatus.PENDING.value)
    sbu_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("sbus.id", ondelete="SET NULL"), nullable=True, index=True
    )
    avatar_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class TierAssignmentModel(Base):
    """
    Database model for TierAssignment entity.

    Maps to the 'tier_assignments' table. One seat per (user, SBU).
    """
    __tablename__ = "tier_assignments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sbu_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("sbus.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tier: Mapped[Tier] = mapped_column(String(20), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "sbu_id", name="uq_tier_assignments_user_sbu"),
    )
