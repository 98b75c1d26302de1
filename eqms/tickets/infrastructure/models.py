"""
Ticket Infrastructure Models
============================

SQLAlchemy ORM models for the tickets module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from eqms.config import TicketPriority, TicketStatus
from eqms.infrastructure.database import Base, utcnow


class TicketModel(Base):
    """
    Database model for Ticket entity.

    Maps to the 'tickets' table in the database.
    """
    __tablename__ = "tickets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[TicketStatus] = mapped_column(String(50), nullable=False, default=TicketStatus.NEW.value)
    priority: Mapped[TicketPriority] = mapped_column(String(20), nullable=False)

    sbu_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("sbus.id"), nullable=False, index=True
    )
    created_by: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )
    assigned_to: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Minutes allotted for the current status
    sla_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    resolution: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Query form
    card_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    module: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    account_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    query_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        # Escalation sweep scans by status
        Index("ix_tickets_status_created_at", "status", "created_at"),
    )


class TicketCommentModel(Base):
    """
    Database model for TicketComment entity.

    Maps to the 'ticket_comments' table.
    """
    __tablename__ = "ticket_comments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
