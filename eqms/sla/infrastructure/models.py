"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for the SLA module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from eqms.infrastructure.database import Base, utcnow


class SLAConfigModel(Base):
    """
    Database model for SLAConfig entity.

    Maps to the 'sla_configs' table. One row per (sbu_id, ticket_status).
    """
    __tablename__ = "sla_configs"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    sbu_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("sbus.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Policy key: "open" for new tickets, otherwise the status value
    ticket_status: Mapped[str] = mapped_column(String(50), nullable=False)
    sla_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # minutes
    warning_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("sbu_id", "ticket_status", name="uq_sla_configs_sbu_status"),
    )
